"""
consulconf - Typed Source Base

Every source answers the same typed getters with a (value, found) pair. The
getters are thin wrappers over one get(key, kind) path:

    qualify key -> look up raw value -> miss: ask defaults
                                     -> hit: trim + coerce (no defaults on failure)

Patterns Applied:
- Protocol typing so any object with the getters can serve as defaults
- Template method: subclasses only provide _lookup()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from consulconf.source.coercion import ValueKind, coerce, zero
from consulconf.source.namespace import Namespace


@runtime_checkable
class SourceProtocol(Protocol):
    """Protocol for configuration sources.

    Enables StaticSource, EmptySource or a caller's own object as defaults.
    """

    def get_string(self, key: str) -> tuple[str, bool]: ...

    def get_string_list(self, key: str) -> tuple[list[str], bool]: ...

    def get_int(self, key: str) -> tuple[int, bool]: ...

    def get_int8(self, key: str) -> tuple[int, bool]: ...

    def get_int16(self, key: str) -> tuple[int, bool]: ...

    def get_int32(self, key: str) -> tuple[int, bool]: ...

    def get_int64(self, key: str) -> tuple[int, bool]: ...

    def get_uint(self, key: str) -> tuple[int, bool]: ...

    def get_uint8(self, key: str) -> tuple[int, bool]: ...

    def get_uint16(self, key: str) -> tuple[int, bool]: ...

    def get_uint32(self, key: str) -> tuple[int, bool]: ...

    def get_uint64(self, key: str) -> tuple[int, bool]: ...

    def get_float32(self, key: str) -> tuple[float, bool]: ...

    def get_float64(self, key: str) -> tuple[float, bool]: ...

    def get_bool(self, key: str) -> tuple[bool, bool]: ...

    def get_duration(self, key: str) -> tuple[timedelta, bool]: ...

    def get_time(self, key: str) -> tuple[datetime, bool]: ...


class TypedSource(ABC):
    """Base class implementing every typed getter on top of _lookup().

    Attributes:
        namespace: Namespace applied to keys before lookup
        defaults: Source consulted when a key is absent, or None
    """

    def __init__(
        self,
        namespace: Namespace | None = None,
        defaults: SourceProtocol | None = None,
    ) -> None:
        self._namespace = namespace or Namespace()
        self._defaults = defaults

    @property
    def namespace(self) -> Namespace:
        return self._namespace

    @property
    def defaults(self) -> SourceProtocol | None:
        return self._defaults

    @abstractmethod
    def _lookup(self, qualified_key: str) -> str | None:
        """Return the raw value stored under a qualified key, or None."""
        ...

    def get(self, key: str, kind: ValueKind) -> tuple[Any, bool]:
        """Look up key and convert it to kind.

        A key that exists but does not parse yields (zero, False) without
        consulting the defaults.

        Args:
            key: Namespace-relative key
            kind: Target value type

        Returns:
            (value, found) pair
        """
        raw = self._lookup(self._namespace.qualify(key))
        if raw is None:
            if self._defaults is None:
                return zero(kind), False
            result: tuple[Any, bool] = getattr(self._defaults, kind.accessor)(key)
            return result
        return coerce(raw, kind)

    def get_string(self, key: str) -> tuple[str, bool]:
        return self.get(key, ValueKind.STRING)

    def get_string_list(self, key: str) -> tuple[list[str], bool]:
        return self.get(key, ValueKind.STRING_LIST)

    def get_int(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.INT)

    def get_int8(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.INT8)

    def get_int16(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.INT16)

    def get_int32(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.INT32)

    def get_int64(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.INT64)

    def get_uint(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.UINT)

    def get_uint8(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.UINT8)

    def get_uint16(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.UINT16)

    def get_uint32(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.UINT32)

    def get_uint64(self, key: str) -> tuple[int, bool]:
        return self.get(key, ValueKind.UINT64)

    def get_float32(self, key: str) -> tuple[float, bool]:
        return self.get(key, ValueKind.FLOAT32)

    def get_float64(self, key: str) -> tuple[float, bool]:
        return self.get(key, ValueKind.FLOAT64)

    def get_bool(self, key: str) -> tuple[bool, bool]:
        return self.get(key, ValueKind.BOOL)

    def get_duration(self, key: str) -> tuple[timedelta, bool]:
        return self.get(key, ValueKind.DURATION)

    def get_time(self, key: str) -> tuple[datetime, bool]:
        return self.get(key, ValueKind.TIME)
