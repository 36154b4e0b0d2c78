"""consulconf: self-refreshing configuration sources backed by Consul KV.

A source keeps an immutable snapshot of one Consul namespace, refreshes it on
a background thread and answers typed lookups with (value, found) pairs:

    cancel = threading.Event()
    source = new_source(cancel=cancel, address="127.0.0.1:8500",
                        namespace=Namespace("billing"))
    port, found = source.get_uint16("HTTP_PORT")
"""

__version__ = "0.1.0"

from consulconf.core.exceptions import (  # noqa: E402
    ConfigurationError,
    ConsulConfError,
    StoreClientError,
)
from consulconf.source import (  # noqa: E402
    ChangeEvent,
    ConsulSource,
    EmptySource,
    Namespace,
    Options,
    RefreshStatus,
    Snapshot,
    SourceProtocol,
    StaticSource,
    Subscription,
    ValueKind,
    from_settings,
    new_source,
)

__all__ = [
    "ChangeEvent",
    "ConfigurationError",
    "ConsulConfError",
    "ConsulSource",
    "EmptySource",
    "Namespace",
    "Options",
    "RefreshStatus",
    "Snapshot",
    "SourceProtocol",
    "StaticSource",
    "StoreClientError",
    "Subscription",
    "ValueKind",
    "__version__",
    "from_settings",
    "new_source",
]
