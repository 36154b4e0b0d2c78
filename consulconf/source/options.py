"""
consulconf - Source Options

Options are fixed when a source is built and never change afterwards.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Final

from consulconf.clients.consul_kv import KVClientProtocol
from consulconf.core.config import Settings
from consulconf.source.base import SourceProtocol
from consulconf.source.namespace import Namespace
from consulconf.source.static import EmptySource

MIN_REFRESH_INTERVAL: Final[float] = 1.0
DEFAULT_REFRESH_INTERVAL: Final[float] = 10.0


@dataclass(frozen=True)
class Options:
    """Everything needed to build a Consul source.

    Attributes:
        cancel: Event that stops refreshing for good once set (required)
        address: Consul agent address, e.g. "127.0.0.1:8500"
        username: HTTP basic auth user
        password: HTTP basic auth password
        token: Consul ACL token
        namespace: Prefix + delimiter applied to every key
        refresh_interval: Seconds between polls; below 1s falls back to 10s
        request_timeout: Seconds before a poll gives up (None waits forever)
        defaults: Source consulted for keys missing from Consul
        client: Pre-built store client; skips building one from address
    """

    cancel: threading.Event | None = None
    address: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    token: str | None = field(default=None, repr=False)
    namespace: Namespace = field(default_factory=Namespace)
    refresh_interval: float | timedelta = DEFAULT_REFRESH_INTERVAL
    request_timeout: float | None = None
    defaults: SourceProtocol | None = None
    client: KVClientProtocol | None = None

    def normalized(self) -> Options:
        """Copy with the refresh interval in seconds and clamped, and defaults filled."""
        interval = self.refresh_interval
        if isinstance(interval, timedelta):
            interval = interval.total_seconds()
        if interval is None or interval < MIN_REFRESH_INTERVAL:
            interval = DEFAULT_REFRESH_INTERVAL

        defaults = self.defaults
        if defaults is None:
            defaults = EmptySource()

        return replace(self, refresh_interval=float(interval), defaults=defaults)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cancel: threading.Event,
        defaults: SourceProtocol | None = None,
    ) -> Options:
        """Build options from environment-driven Settings.

        Args:
            settings: Loaded Settings
            cancel: Cancellation event for the source
            defaults: Optional fallback source

        Returns:
            Options (not yet normalized)
        """
        return cls(
            cancel=cancel,
            address=settings.address,
            username=settings.username,
            password=settings.password,
            token=settings.token,
            namespace=Namespace(name=settings.namespace, delimiter=settings.delimiter),
            refresh_interval=settings.refresh_interval,
            request_timeout=settings.request_timeout,
            defaults=defaults,
        )
