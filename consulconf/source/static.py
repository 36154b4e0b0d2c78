"""In-memory sources, mainly used as defaults behind a Consul source."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from consulconf.source.base import SourceProtocol, TypedSource
from consulconf.source.namespace import Namespace


class EmptySource(TypedSource):
    """Source with no keys. Every getter returns (zero, False)."""

    def _lookup(self, qualified_key: str) -> str | None:  # noqa: ARG002
        return None


class StaticSource(TypedSource):
    """Source backed by a fixed mapping of raw string values.

    Values go through the same trimming and coercion as values read from
    Consul, so StaticSource({"PORT": "8080"}).get_uint16("PORT") == (8080, True).
    """

    def __init__(
        self,
        values: Mapping[str, str],
        namespace: Namespace | None = None,
        defaults: SourceProtocol | None = None,
    ) -> None:
        super().__init__(namespace=namespace, defaults=defaults)
        self._values = MappingProxyType(dict(values))

    def _lookup(self, qualified_key: str) -> str | None:
        return self._values.get(qualified_key)
