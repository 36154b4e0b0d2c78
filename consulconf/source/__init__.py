"""Configuration sources: Consul-backed, static and empty."""

from consulconf.source.base import SourceProtocol, TypedSource
from consulconf.source.coercion import ValueKind
from consulconf.source.consul import ConsulSource, RefreshStatus, from_settings, new_source
from consulconf.source.namespace import Namespace
from consulconf.source.options import Options
from consulconf.source.snapshot import Snapshot
from consulconf.source.static import EmptySource, StaticSource
from consulconf.source.watch import ChangeEvent, Subscription

__all__ = [
    "ChangeEvent",
    "ConsulSource",
    "EmptySource",
    "Namespace",
    "Options",
    "RefreshStatus",
    "Snapshot",
    "SourceProtocol",
    "StaticSource",
    "Subscription",
    "TypedSource",
    "ValueKind",
    "from_settings",
    "new_source",
]
