"""
consulconf - Snapshot

Immutable point-in-time copy of the store keys a source can see.

Patterns Applied:
- Replace, never mutate: a refresh builds a new Snapshot and swaps the reference
- Read-only mapping view so callers cannot edit a published snapshot
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class Snapshot:
    """Raw key/value pairs tagged with the store version they were read at.

    Attributes:
        values: Store key -> raw (untrimmed) string value
        version: Store modify index the pairs were listed at
    """

    values: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    version: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.values, MappingProxyType):
            object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def empty(cls) -> Snapshot:
        """Snapshot served before the first successful refresh."""
        return cls()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]], version: int) -> Snapshot:
        """Build a snapshot from listed (key, value) pairs.

        Args:
            pairs: Pairs as returned by a store client
            version: Store index of the listing

        Returns:
            New Snapshot owning its own copy of the pairs
        """
        return cls(values=MappingProxyType(dict(pairs)), version=version)

    def lookup(self, key: str) -> str | None:
        """Return the raw value stored under key, or None."""
        return self.values.get(key)

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def changed_keys(self, other: Snapshot) -> frozenset[str]:
        """Keys added, removed or modified between this snapshot and other."""
        keys = set(self.values) | set(other.values)
        return frozenset(k for k in keys if self.values.get(k) != other.values.get(k))
