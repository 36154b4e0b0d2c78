"""Key qualification for sources that share one key/value store."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DELIMITER = "/"


@dataclass(frozen=True)
class Namespace:
    """Prefix + delimiter pair that scopes keys in a shared store.

    With name "FOO" and delimiter "/", the key "HTTP_HOST" is stored as
    "FOO/HTTP_HOST". An empty name leaves keys untouched.
    """

    name: str = ""
    delimiter: str = DEFAULT_DELIMITER

    @property
    def prefix(self) -> str:
        """Prefix shared by every qualified key ("" without a name)."""
        if not self.name:
            return ""
        return self.name + self.delimiter

    def qualify(self, key: str) -> str:
        """Return the store key for a namespace-relative key."""
        if not self.name:
            return key
        return self.name + self.delimiter + key

    def contains(self, qualified_key: str) -> bool:
        """Check whether a store key belongs to this namespace."""
        return qualified_key.startswith(self.prefix)

    def strip(self, qualified_key: str) -> str:
        """Inverse of qualify() for keys inside the namespace.

        Raises:
            ValueError: If the key lives outside this namespace
        """
        if not self.contains(qualified_key):
            raise ValueError(f"key {qualified_key!r} is outside namespace {self.name!r}")
        return qualified_key[len(self.prefix):]
