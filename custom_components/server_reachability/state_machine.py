"""
Connectivity state machine: single owner of the NetworkSnapshot.

Responsibilities:
- Seed the snapshot from the device observer and keep it current from
  observer events, server probes and explicit checks.
- Debounce server probes and share an in-flight probe between callers.
- Discard probe results superseded by a newer device-offline event or a
  newer applied probe.
- Notify listeners synchronously after every snapshot change.

All snapshot writes happen on the event loop through _apply(); there are no
locks. No HA imports. Public operations never raise: failures end up as a
status value plus server_error_message.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from typing import Callable

from .const import MESSAGE_NO_INTERNET, MESSAGE_SERVER_UNAVAILABLE, SERVER_CHECK_DEBOUNCE
from .device_observer import DeviceConnectivityObserver
from .network_snapshot import ConnectionStatus, DeviceState, NetworkSnapshot
from .server_prober import ProbeOutcome, ProbeResult, ServerHealthProber

_LOGGER = logging.getLogger(__name__)

SnapshotListener = Callable[[NetworkSnapshot], None]


class ConnectivityStateMachine:
    """
    Owns the canonical connectivity status for one backend.

    Must be initialized once; the handle returned by initialize() is the
    only supported way to detach from the observer.
    """

    def __init__(
        self,
        observer: DeviceConnectivityObserver,
        prober: ServerHealthProber,
        debounce: float = SERVER_CHECK_DEBOUNCE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._observer = observer
        self._prober = prober
        self._debounce = debounce
        self._clock = clock

        self._snapshot = NetworkSnapshot()
        self._listeners: list[SnapshotListener] = []

        # In-flight probe shared by concurrent callers
        self._probe_task: asyncio.Task | None = None
        self._probe_generation: int = 0
        # Bumped on every transition into OFFLINE; probes started under an
        # older generation are stale.
        self._offline_generation: int = 0

        self._unsubscribe_handle: Callable[[], None] | None = None
        self._unsubscribe_observer: Callable[[], None] | None = None
        self._observer_attached: bool = False
        self._background_tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> NetworkSnapshot:
        return self._snapshot

    @property
    def status(self) -> ConnectionStatus:
        return self._snapshot.status

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register listener for snapshot changes and return its remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> Callable[[], None]:
        """
        Seed from one device read, subscribe to the observer and, if the
        device is online, run the first server probe.
        """
        if self._unsubscribe_handle is not None:
            _LOGGER.warning("Connectivity state machine is already initialized")
            return self._unsubscribe_handle

        detached = False

        def unsubscribe() -> None:
            nonlocal detached
            if detached:
                return
            detached = True
            self._observer_attached = False
            if self._unsubscribe_observer is not None:
                self._unsubscribe_observer()
                self._unsubscribe_observer = None

        self._unsubscribe_handle = unsubscribe

        state = await self._fetch_device()
        if state is not None:
            self._seed(state)

        if not detached:
            self._observer_attached = True
            self._unsubscribe_observer = self._observer.subscribe(self._handle_device_event)

        # A failed read keeps the optimistic default and still probes
        if not detached and self._snapshot.device_online:
            await self.check_server_health(force=True)

        return unsubscribe

    async def async_shutdown(self) -> None:
        """Detach from the observer and cancel probes still running."""
        if self._unsubscribe_handle is not None:
            self._unsubscribe_handle()

        tasks = list(self._background_tasks)
        if self._probe_task is not None and not self._probe_task.done():
            tasks.append(self._probe_task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._probe_task = None
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def check_connection(self) -> bool:
        """Device-level check only. Returns True when the device is online."""
        state = await self._fetch_device()
        if state is None:
            return self._snapshot.device_online

        fields = self._device_fields(state)
        if not state.is_online:
            self._mark_offline(**fields)
            return False

        self._apply(**fields)
        return True

    async def check_server_health(self, force: bool = False) -> bool:
        """
        Probe the server unless a recent result can be reused.

        Joins a probe that is already running. Without force, a probe that
        started less than `debounce` seconds ago is not repeated and its
        cached result is returned.
        """
        if not self._snapshot.device_online:
            if self._snapshot.status is not ConnectionStatus.OFFLINE:
                self._mark_offline()
            return False

        task = self._probe_task
        if task is not None and not task.done() and self._probe_generation == self._offline_generation:
            return await asyncio.shield(task)

        now = self._clock()
        last_check = self._snapshot.last_server_check_at
        if not force and last_check is not None and now - last_check < self._debounce:
            _LOGGER.debug("Server check debounced (%.1fs since last probe)", now - last_check)
            return self._snapshot.is_server_reachable

        self._probe_generation = self._offline_generation
        task = asyncio.ensure_future(self._run_probe(now, self._offline_generation))
        self._probe_task = task
        return await asyncio.shield(task)

    async def check_full_connectivity(self) -> ConnectionStatus:
        """Explicit retry entry point: device check, then server check."""
        self._apply(is_checking=True)
        try:
            if not await self.check_connection():
                if self._snapshot.status is not ConnectionStatus.OFFLINE:
                    self._mark_offline()
                return ConnectionStatus.OFFLINE

            force = self._snapshot.status in (ConnectionStatus.OFFLINE, ConnectionStatus.CHECKING)
            await self.check_server_health(force=force)
            return self._snapshot.status
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Full connectivity check failed")
            return self._snapshot.status
        finally:
            self._apply(is_checking=False)

    async def require_network(self) -> bool:
        """Yes/no gate for call sites that do not track the snapshot."""
        return await self.check_full_connectivity() is ConnectionStatus.CONNECTED

    def report_server_reachability(self, reachable: bool, error_message: str | None = None) -> None:
        """
        Record a server outcome observed outside the prober, e.g. by an API
        client whose request just failed. Device offline still wins.
        """
        if not self._snapshot.device_online:
            if self._snapshot.status is not ConnectionStatus.OFFLINE:
                self._mark_offline()
            return

        if reachable:
            self._apply(
                status=ConnectionStatus.CONNECTED,
                is_server_reachable=True,
                server_error_message=None,
                is_loading=False,
            )
        else:
            self._apply(
                status=ConnectionStatus.SERVER_UNAVAILABLE,
                is_server_reachable=False,
                server_error_message=error_message or MESSAGE_SERVER_UNAVAILABLE,
                is_loading=False,
            )

    # ------------------------------------------------------------------
    # Observer events
    # ------------------------------------------------------------------

    def _handle_device_event(self, state: DeviceState) -> None:
        """Apply a device transition immediately, in delivery order."""
        if not self._observer_attached:
            return

        was_online = self._snapshot.device_online
        fields = self._device_fields(state)

        if not state.is_online:
            self._mark_offline(**fields)
            return

        if not was_online or self._snapshot.status is ConnectionStatus.OFFLINE:
            # Optimistic: unblock right away, the probe corrects it if needed
            self._apply(status=ConnectionStatus.CONNECTED, is_loading=False, **fields)
            self._spawn(self.check_server_health(force=True))
            return

        self._apply(**fields)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _seed(self, state: DeviceState) -> None:
        fields = self._device_fields(state)
        if state.is_online:
            self._apply(**fields)
        else:
            self._mark_offline(**fields)

    async def _fetch_device(self) -> DeviceState | None:
        try:
            return await self._observer.fetch_once()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to read device connectivity: %s", exc)
            return None

    async def _run_probe(self, started_at: float, generation: int) -> bool:
        try:
            result = await self._prober.probe()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Server probe raised unexpectedly: %s", exc)
            result = ProbeResult(ProbeOutcome.UNREACHABLE, message=MESSAGE_SERVER_UNAVAILABLE)

        # Re-read the device: a probe that failed because the device went
        # offline must end in OFFLINE, not SERVER_UNAVAILABLE.
        device = await self._fetch_device()
        return self._apply_probe_result(started_at, generation, result, device)

    def _apply_probe_result(
        self,
        started_at: float,
        generation: int,
        result: ProbeResult,
        device: DeviceState | None,
    ) -> bool:
        last_check = self._snapshot.last_server_check_at
        if generation != self._offline_generation or (last_check is not None and started_at < last_check):
            _LOGGER.debug("Discarding superseded probe result (%s)", result.outcome.value)
            return self._snapshot.is_server_reachable

        fields = self._device_fields(device) if device is not None else {}
        device_online = device.is_online if device is not None else self._snapshot.device_online

        if not device_online:
            self._mark_offline(
                server_error_message=MESSAGE_NO_INTERNET,
                last_server_check_at=started_at,
                **fields,
            )
            return False

        if result.reachable:
            self._apply(
                status=ConnectionStatus.CONNECTED,
                is_server_reachable=True,
                server_error_message=None,
                last_server_check_at=started_at,
                is_loading=False,
                **fields,
            )
            return True

        self._apply(
            status=ConnectionStatus.SERVER_UNAVAILABLE,
            is_server_reachable=False,
            server_error_message=result.message or MESSAGE_SERVER_UNAVAILABLE,
            last_server_check_at=started_at,
            is_loading=False,
            **fields,
        )
        return False

    def _mark_offline(self, **changes) -> None:
        self._offline_generation += 1
        self._apply(
            status=ConnectionStatus.OFFLINE,
            is_server_reachable=False,
            is_loading=False,
            **changes,
        )

    def _device_fields(self, state: DeviceState) -> dict:
        return {
            "is_connected": state.is_connected,
            "is_internet_reachable": state.is_internet_reachable,
            "connection_type": state.connection_type,
            "last_checked_at": self._clock(),
        }

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def _apply(self, **changes) -> None:
        """The only place the snapshot is replaced."""
        previous = self._snapshot
        updated = dataclasses.replace(previous, **changes)
        if updated == previous:
            return
        self._snapshot = updated

        if updated.status is not previous.status:
            _LOGGER.info(
                "Connection status changed: %s -> %s",
                previous.status.value, updated.status.value,
            )

        for listener in list(self._listeners):
            try:
                listener(updated)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Connectivity listener failed")
