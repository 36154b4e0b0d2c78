"""
Namespace and Snapshot Tests

Namespace:
- qualify() joins name and key with the delimiter; an empty name is a no-op
- contains()/strip() map store keys back to namespace-relative keys

Snapshot:
- immutable after construction
- changed_keys() reports additions, removals and modifications
"""

from types import MappingProxyType

import pytest

from consulconf.source.namespace import Namespace
from consulconf.source.snapshot import Snapshot


class TestNamespace:
    """Tests for Namespace."""

    def test_qualify_with_name(self) -> None:
        """qualify() joins name, delimiter and key."""
        assert Namespace("FOO", "/").qualify("HTTP_HOST") == "FOO/HTTP_HOST"

    def test_qualify_custom_delimiter(self) -> None:
        """A custom delimiter is used when qualifying."""
        assert Namespace("FOO", ".").qualify("HTTP_HOST") == "FOO.HTTP_HOST"

    def test_qualify_without_name_is_identity(self) -> None:
        """An empty name leaves keys untouched."""
        assert Namespace().qualify("HTTP_HOST") == "HTTP_HOST"
        assert Namespace("", "/").prefix == ""

    def test_default_delimiter_is_slash(self) -> None:
        """The delimiter defaults to "/"."""
        assert Namespace("FOO").delimiter == "/"

    def test_contains_and_strip(self) -> None:
        """strip() undoes qualify() for keys inside the namespace."""
        namespace = Namespace("FOO", "/")
        assert namespace.contains("FOO/HTTP_HOST")
        assert not namespace.contains("BAR/HTTP_HOST")
        assert not namespace.contains("FOOBAR/HTTP_HOST")
        assert namespace.strip("FOO/HTTP_HOST") == "HTTP_HOST"

    def test_strip_outside_namespace_raises(self) -> None:
        """strip() rejects keys from another namespace."""
        with pytest.raises(ValueError):
            Namespace("FOO", "/").strip("BAR/HTTP_HOST")

    def test_namespace_is_immutable(self) -> None:
        """Namespace fields cannot be reassigned."""
        namespace = Namespace("FOO", "/")
        with pytest.raises(AttributeError):
            namespace.name = "BAR"  # type: ignore[misc]


class TestSnapshot:
    """Tests for Snapshot."""

    def test_empty_snapshot(self) -> None:
        """The empty snapshot has version 0 and no keys."""
        snapshot = Snapshot.empty()
        assert snapshot.version == 0
        assert len(snapshot) == 0
        assert snapshot.lookup("FOO/HTTP_HOST") is None

    def test_from_pairs_keeps_raw_values(self) -> None:
        """Snapshots store values untrimmed."""
        snapshot = Snapshot.from_pairs([("FOO/LABELS", "a, b,   c ,d ")], version=7)
        assert snapshot.version == 7
        assert snapshot.lookup("FOO/LABELS") == "a, b,   c ,d "
        assert "FOO/LABELS" in snapshot

    def test_values_are_read_only(self) -> None:
        """Snapshot values cannot be edited."""
        snapshot = Snapshot.from_pairs([("A", "1")], version=1)
        assert isinstance(snapshot.values, MappingProxyType)
        with pytest.raises(TypeError):
            snapshot.values["A"] = "2"  # type: ignore[index]

    def test_snapshot_copies_source_mapping(self) -> None:
        """Later edits to the input mapping do not leak in."""
        values = {"A": "1"}
        snapshot = Snapshot(values=values, version=1)
        values["A"] = "2"
        assert snapshot.lookup("A") == "1"

    def test_changed_keys(self) -> None:
        """changed_keys() reports added, removed and modified keys."""
        old = Snapshot.from_pairs([("A", "1"), ("B", "2"), ("C", "3")], version=1)
        new = Snapshot.from_pairs([("A", "1"), ("B", "20"), ("D", "4")], version=2)
        assert new.changed_keys(old) == frozenset({"B", "C", "D"})
