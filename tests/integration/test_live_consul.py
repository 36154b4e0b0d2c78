"""
Live Consul Integration Tests

Runs against a real Consul agent. Skipped unless CONSULCONF_TEST_ADDRESS is
set, e.g.:

    docker run -d -p 8500:8500 hashicorp/consul agent -dev -client 0.0.0.0
    CONSULCONF_TEST_ADDRESS=127.0.0.1:8500 pytest -m integration

WARNING: every test wipes the whole KV store of that agent.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from consulconf.clients.consul_kv import ConsulKVClient, parse_address
from consulconf.source.consul import ConsulSource, new_source
from consulconf.source.namespace import Namespace

CONSUL_ADDRESS: str = os.environ.get("CONSULCONF_TEST_ADDRESS", "")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not CONSUL_ADDRESS, reason="CONSULCONF_TEST_ADDRESS not set"),
]

SEED_VALUES: dict[str, str] = {
    "NO_NAMESPACE_STRING": "hello",
    "NO_NAMESPACE_INT": "42",
    "FOO/EMPTY": "",
    "FOO/HTTP_HOST": "foo.example.com",
    "FOO/HTTP_PORT": "1234",
    "FOO/FLOAT": "12.345",
    "FOO/BOOL_TRUE": "true",
    "FOO/BOOL_TRUE_UPPER": "TRUE",
    "FOO/BOOL_FALSE": "false",
    "FOO/LABELS": "a, b,   c ,d ",
    "FOO/DURATION_1": "5m3s",
    "FOO/DURATION_2": "12h",
    "FOO/DATE": "2019-12-25",
    "FOO/DATE_TIME": "2019-12-25T12:00:05.0Z",
    "BAR/HTTP_HOST": "bar.example.com",
}

WAIT_TIMEOUT: float = 10.0


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def kv() -> Iterator[httpx.Client]:
    """Raw HTTP client used to seed the store."""
    base_url, _ = parse_address(CONSUL_ADDRESS)
    with httpx.Client(base_url=base_url, timeout=5.0) as client:
        yield client


def _put(kv: httpx.Client, key: str, value: str) -> None:
    response = kv.put(f"/v1/kv/{key}", content=value.encode("utf-8"))
    response.raise_for_status()


@pytest.fixture(autouse=True)
def seeded_store(kv: httpx.Client) -> None:
    """Start every test from a blank store holding SEED_VALUES."""
    kv.delete("/v1/kv/", params={"recurse": "true"}).raise_for_status()
    for key, value in SEED_VALUES.items():
        _put(kv, key, value)


@pytest.fixture
def cancel() -> Iterator[threading.Event]:
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def source(cancel: threading.Event) -> ConsulSource:
    return new_source(
        cancel=cancel,
        address=CONSUL_ADDRESS,
        namespace=Namespace("FOO", "/"),
        refresh_interval=1.0,
    )


# =============================================================================
# Client
# =============================================================================


class TestLiveClient:
    """ConsulKVClient against the agent."""

    def test_lists_namespace(self) -> None:
        """Listing FOO returns its decoded pairs and a positive index."""
        client = ConsulKVClient(CONSUL_ADDRESS)
        try:
            pairs, index = client.list("FOO")
        finally:
            client.close()

        values = dict(pairs)
        assert index > 0
        assert values["FOO/HTTP_HOST"] == "foo.example.com"
        assert values["FOO/EMPTY"] == ""
        assert "BAR/HTTP_HOST" not in values

    def test_missing_prefix_is_empty(self) -> None:
        """A prefix with no keys lists as empty rather than failing."""
        client = ConsulKVClient(CONSUL_ADDRESS)
        try:
            pairs, _ = client.list("NOT_THERE")
        finally:
            client.close()
        assert pairs == []


# =============================================================================
# Source
# =============================================================================


class TestLiveSource:
    """Typed reads and refresh behavior against the agent."""

    def test_options(self, source: ConsulSource) -> None:
        """Options keep the namespace the source was built with."""
        assert source.options().namespace.name == "FOO"
        assert source.options().namespace.delimiter == "/"

    def test_typed_reads(self, source: ConsulSource) -> None:
        """Seeded values read back through every getter family."""
        assert source.get_string("HTTP_HOST") == ("foo.example.com", True)
        assert source.get_string("NO_NAMESPACE_STRING") == ("", False)
        assert source.get_string_list("LABELS") == (["a", "b", "c", "d"], True)
        assert source.get_int("FLOAT") == (12, True)
        assert source.get_int8("HTTP_PORT") == (-46, True)
        assert source.get_bool("BOOL_TRUE_UPPER") == (True, True)
        assert source.get_duration("DURATION_1") == (timedelta(minutes=5, seconds=3), True)
        assert source.get_time("DATE") == (datetime(2019, 12, 25, tzinfo=timezone.utc), True)

    def test_watcher_fires_on_update(self, kv: httpx.Client, source: ConsulSource) -> None:
        """The watch callback sees the value written to Consul."""
        fired = threading.Event()
        seen: list[str] = []

        def on_change(changed: ConsulSource) -> None:
            seen.append(changed.get_string("HTTP_HOST")[0])
            fired.set()

        source.watch(on_change)
        _put(kv, "FOO/HTTP_HOST", "google.com")

        assert fired.wait(WAIT_TIMEOUT)
        assert seen[0] == "google.com"

    def test_refresh_delay(self, kv: httpx.Client, source: ConsulSource) -> None:
        """Writes show up only after a refresh interval has passed."""
        _put(kv, "FOO/HTTP_HOST", "google.com")
        assert source.get_string("HTTP_HOST") == ("foo.example.com", True)

        time.sleep(2)
        assert source.get_string("HTTP_HOST") == ("google.com", True)

        time.sleep(2)
        assert source.get_string("HTTP_HOST") == ("google.com", True)

    def test_unresolvable_host_serves_nothing(self, cancel: threading.Event) -> None:
        """An unresolvable agent builds a source that serves zero values."""
        source = new_source(
            cancel=cancel,
            address="asldjfaslkdjf",
            namespace=Namespace("FOO"),
            refresh_interval=1.0,
            request_timeout=2.0,
        )
        assert source.get_string("HTTP_HOST") == ("", False)
        assert source.get_int16("HTTP_PORT") == (0, False)

    def test_cancel_freezes_values(self, kv: httpx.Client, cancel: threading.Event) -> None:
        """After cancel, writes to Consul are never picked up."""
        source = new_source(
            cancel=cancel,
            address=CONSUL_ADDRESS,
            namespace=Namespace("FOO"),
            refresh_interval=2.0,
        )
        cancel.set()
        _put(kv, "FOO/HTTP_HOST", "google.com")

        time.sleep(3)
        assert source.get_string("HTTP_HOST") == ("foo.example.com", True)
