"""
consulconf - Custom Exceptions

Anti-Patterns Avoided:
- Exception Shadowing: namespaced exceptions instead of builtins like ConnectionError
"""

from __future__ import annotations


class ConsulConfError(Exception):
    """Base exception for consulconf.

    All custom exceptions inherit from this base class.
    """
    pass


class ConfigurationError(ConsulConfError):
    """Raised when a source cannot be constructed from the given options.

    Covers a missing cancel event, a missing address and an address the
    HTTP transport cannot be built from.
    """
    pass


class StoreClientError(ConsulConfError):
    """Raised when the key/value store cannot be listed.

    The refresh loop catches this and keeps serving the previous snapshot.

    Attributes:
        status_code: HTTP status returned by the store, if any
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
