"""
consulconf - Consul Source

A configuration source that keeps a local snapshot of one Consul namespace
and refreshes it on a background thread.

Lifecycle:
1. new_source() validates options and builds the KV client
2. refresh() runs once, synchronously, before the source is returned
3. a daemon thread waits on cancel.wait(refresh_interval) and refreshes on
   every timeout; once the cancel event is set it exits for good

Patterns Applied:
- Single writer, many readers: the snapshot reference is swapped, never edited
- Fail-open refresh: store errors are logged and the last snapshot is served
- Fail-closed coercion: a present but unparseable value never falls back to defaults
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, cast

from consulconf.clients.consul_kv import ConsulKVClient, KVClientProtocol
from consulconf.core.config import Settings
from consulconf.core.exceptions import ConfigurationError, StoreClientError
from consulconf.core.logging import get_logger
from consulconf.core.tracing import get_tracer
from consulconf.source.base import SourceProtocol, TypedSource
from consulconf.source.options import Options
from consulconf.source.snapshot import Snapshot
from consulconf.source.watch import ChangeEvent, Subscription, WatchCallback, WatchNotifier

logger = get_logger(__name__)
tracer = get_tracer(__name__)


@dataclass(frozen=True)
class RefreshStatus:
    """Health of the refresh loop.

    Attributes:
        version: Version of the snapshot being served (0 before any load)
        last_attempt_at: When the store was last polled
        last_success_at: When the store was last read successfully
        consecutive_failures: Failed polls since the last success
        last_error: Message of the most recent failure, cleared on success
        cancelled: Whether refreshing has stopped for good
    """

    version: int = 0
    last_attempt_at: datetime | None = None
    last_success_at: datetime | None = None
    consecutive_failures: int = 0
    last_error: str | None = None
    cancelled: bool = False

    def is_stale(self, max_age: float | timedelta, now: datetime | None = None) -> bool:
        """True if no successful read happened within max_age.

        Args:
            max_age: Allowed age in seconds or as a timedelta
            now: Reference time (defaults to the current UTC time)
        """
        if self.last_success_at is None:
            return True
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        now = now or datetime.now(timezone.utc)
        return now - self.last_success_at > max_age


class ConsulSource(TypedSource):
    """Self-refreshing source over one Consul namespace.

    Do not build directly - use new_source() so the initial load and the
    refresh thread are started in the right order.

    Usage:
        cancel = threading.Event()
        source = new_source(cancel=cancel, address="127.0.0.1:8500",
                            namespace=Namespace("billing"))
        host, found = source.get_string("HTTP_HOST")
    """

    def __init__(
        self,
        options: Options,
        client: KVClientProtocol,
        owns_client: bool = False,
    ) -> None:
        """Initialize the source without touching the network.

        Args:
            options: Normalized options (cancel event set)
            client: Store client to poll
            owns_client: Close the client when the refresh loop stops
        """
        super().__init__(namespace=options.namespace, defaults=options.defaults)
        self._options = options
        self._client = client
        self._owns_client = owns_client
        self._snapshot: Snapshot | None = None
        self._status = RefreshStatus()
        self._swap_lock = threading.Lock()
        self._notifier = WatchNotifier()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def options(self) -> Options:
        """Options the source was built with."""
        return self._options

    @property
    def cancelled(self) -> bool:
        cancel = self._options.cancel
        return cancel is not None and cancel.is_set()

    @property
    def version(self) -> int:
        snapshot = self._snapshot
        return snapshot.version if snapshot is not None else 0

    def snapshot(self) -> Snapshot:
        """Snapshot currently served (empty before the first successful load)."""
        return self._snapshot or Snapshot.empty()

    def keys(self) -> list[str]:
        """Namespace-relative keys currently visible, sorted."""
        namespace = self._namespace
        return sorted(
            namespace.strip(key) for key in self.snapshot().values if namespace.contains(key)
        )

    def status(self) -> RefreshStatus:
        """Current refresh health."""
        return replace(self._status, cancelled=self.cancelled)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def _lookup(self, qualified_key: str) -> str | None:
        # One reference read: the whole lookup sees a single snapshot.
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return snapshot.lookup(qualified_key)

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def watch(self, callback: WatchCallback) -> None:
        """Call callback(source) after every refresh that applies a newer version.

        Only one callback is kept; registering again replaces it.
        """
        self._notifier.watch(callback)

    def subscribe(self, maxsize: int = 0) -> Subscription:
        """Open a ChangeEvent stream that ends when the source is cancelled."""
        subscription = self._notifier.subscribe(maxsize=maxsize)
        if self.cancelled:
            subscription.close()
        return subscription

    # -------------------------------------------------------------------------
    # Refresh loop
    # -------------------------------------------------------------------------

    def refresh(self) -> bool:
        """Poll the store once and swap in a newer snapshot.

        Store errors are logged and leave the current snapshot in place.
        Listings whose version is not newer than the current one are ignored.
        Does nothing once the source is cancelled.

        Returns:
            True if a new snapshot was applied
        """
        if self.cancelled:
            return False
        return self._refresh(initial=False)

    def _refresh(self, initial: bool) -> bool:
        # The construction-time load runs even on an already cancelled event.
        namespace = self._namespace.name
        with tracer.start_as_current_span("consul_source.refresh") as span:
            span.set_attribute("consul.namespace", namespace)
            attempted_at = datetime.now(timezone.utc)

            try:
                pairs, version = self._client.list(namespace)
            except (StoreClientError, OSError) as e:
                with self._swap_lock:
                    self._record_failure(attempted_at, e)
                    failures = self._status.consecutive_failures
                span.set_attribute("consul.refresh.outcome", "failed")
                logger.warning(
                    "refresh_failed",
                    namespace=namespace,
                    error=str(e),
                    consecutive_failures=failures,
                )
                return False

            with self._swap_lock:
                if not initial and self.cancelled:
                    return False

                previous = self._snapshot
                current_version = previous.version if previous is not None else 0
                if version <= current_version:
                    self._record_success(attempted_at, current_version)
                    span.set_attribute("consul.refresh.outcome", "unchanged")
                    logger.debug("snapshot_unchanged", namespace=namespace, version=version)
                    return False

                snapshot = Snapshot.from_pairs(pairs, version)
                self._snapshot = snapshot
                self._record_success(attempted_at, version)

            span.set_attribute("consul.refresh.outcome", "applied")
            span.set_attribute("consul.version", version)
            logger.info(
                "snapshot_applied",
                namespace=namespace,
                version=version,
                previous_version=current_version,
                keys=len(snapshot),
            )

            # Observers run outside the swap lock; the load done while
            # building the source never notifies.
            if previous is not None:
                self._notifier.notify(self, self._change_event(previous, snapshot))

            return True

    def _change_event(self, previous: Snapshot, current: Snapshot) -> ChangeEvent:
        namespace = self._namespace
        changed = frozenset(
            namespace.strip(key)
            for key in current.changed_keys(previous)
            if namespace.contains(key)
        )
        return ChangeEvent(
            previous_version=previous.version,
            version=current.version,
            changed_keys=changed,
        )

    def _record_success(self, attempted_at: datetime, version: int) -> None:
        self._status = replace(
            self._status,
            version=version,
            last_attempt_at=attempted_at,
            last_success_at=attempted_at,
            consecutive_failures=0,
            last_error=None,
        )

    def _record_failure(self, attempted_at: datetime, error: Exception) -> None:
        self._status = replace(
            self._status,
            last_attempt_at=attempted_at,
            consecutive_failures=self._status.consecutive_failures + 1,
            last_error=str(error),
        )

    def start(self) -> None:
        """Start the refresh thread. Called once by new_source()."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            name=f"consulconf-refresh-{self._namespace.name or 'root'}",
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        cancel = cast(threading.Event, self._options.cancel)
        interval = float(self._options.refresh_interval)  # type: ignore[arg-type]
        try:
            while not cancel.wait(interval):
                try:
                    self.refresh()
                except Exception:
                    logger.exception("refresh_loop_error", namespace=self._namespace.name)
        finally:
            self._notifier.close_all()
            if self._owns_client:
                self._client.close()
            logger.info("refresh_loop_stopped", namespace=self._namespace.name)

    def close(self, timeout: float | None = None) -> None:
        """Cancel refreshing and wait for the refresh thread to exit.

        This sets the cancel event from the options, which also stops any
        other source sharing that event.
        """
        cancel = self._options.cancel
        if cancel is not None:
            cancel.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def __enter__(self) -> ConsulSource:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


# =============================================================================
# Factories
# =============================================================================


def new_source(options: Options | None = None, **fields: Any) -> ConsulSource:
    """Build a Consul source, load it once and start refreshing.

    An unreachable agent is not an error: the source serves defaults until
    a refresh succeeds.

    Args:
        options: Options to use; keyword fields override individual options
        **fields: Option fields when options is not given

    Returns:
        Running ConsulSource

    Raises:
        ConfigurationError: No cancel event, no address or client, or a malformed address
    """
    if options is None:
        options = Options(**fields)
    elif fields:
        options = replace(options, **fields)

    if options.cancel is None:
        raise ConfigurationError("consul source: cancel event is None")
    options = options.normalized()

    client = options.client
    owns_client = False
    if client is None:
        if not options.address:
            raise ConfigurationError("consul source: address is empty")
        client = ConsulKVClient(
            address=options.address,
            username=options.username,
            password=options.password,
            token=options.token,
            timeout=options.request_timeout,
        )
        owns_client = True

    source = ConsulSource(options, client, owns_client=owns_client)

    # Load first, then poll: the timer starts a full interval after this load.
    source._refresh(initial=True)
    source.start()

    logger.info(
        "source_created",
        namespace=options.namespace.name,
        refresh_interval=options.refresh_interval,
        version=source.version,
    )
    return source


def from_settings(
    cancel: threading.Event,
    settings: Settings | None = None,
    defaults: SourceProtocol | None = None,
) -> ConsulSource:
    """Build a source from CONSULCONF_* environment settings.

    Args:
        cancel: Cancellation event for the source
        settings: Settings override (loaded from the environment when None)
        defaults: Optional fallback source
    """
    settings = settings or Settings()
    return new_source(Options.from_settings(settings, cancel=cancel, defaults=defaults))
