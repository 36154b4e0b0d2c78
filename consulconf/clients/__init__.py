"""Key/value store clients used by consulconf sources."""

from consulconf.clients.consul_kv import (
    ConsulKVClient,
    FakeKVClient,
    KVClientProtocol,
    parse_address,
)

__all__ = ["ConsulKVClient", "FakeKVClient", "KVClientProtocol", "parse_address"]
