"""
Connectivity gate: derived, read-only UI directives for gated screens.

No HA imports.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Callable

from .network_snapshot import ConnectionStatus, NetworkSnapshot
from .state_machine import ConnectivityStateMachine

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class GateView:
    """
    What a gated screen should render.

    Once is_loading is False exactly one of show_content, show_offline and
    show_server_error is True; while loading all three are False.
    """

    status: ConnectionStatus
    is_loading: bool
    show_content: bool
    show_offline: bool
    show_server_error: bool
    show_loading: bool
    server_error_message: str | None = None


def evaluate_gate(snapshot: NetworkSnapshot) -> GateView:
    status = snapshot.status
    loading = snapshot.is_loading or status is ConnectionStatus.CHECKING
    return GateView(
        status=status,
        is_loading=snapshot.is_loading,
        show_content=status is ConnectionStatus.CONNECTED and not loading,
        show_offline=status is ConnectionStatus.OFFLINE and not loading,
        show_server_error=status is ConnectionStatus.SERVER_UNAVAILABLE and not loading,
        show_loading=loading,
        server_error_message=snapshot.server_error_message,
    )


class ConnectivityGate:
    """
    Tracks the gate view across snapshots and owns the retry action.

    on_connection_restored fires once per recovery: the was-disconnected flag
    is raised when a problem is shown and cleared when the callback fires.
    """

    def __init__(
        self,
        machine: ConnectivityStateMachine,
        on_connection_restored: Callable[[], None] | None = None,
    ) -> None:
        self._machine = machine
        self._on_connection_restored = on_connection_restored
        self._view = evaluate_gate(machine.snapshot)
        self._was_disconnected = False
        self._has_loaded_once = False

    @property
    def view(self) -> GateView:
        return self._view

    @property
    def was_disconnected(self) -> bool:
        return self._was_disconnected

    @property
    def has_loaded_once(self) -> bool:
        """True once content has been shown; the initial grace window is over."""
        return self._has_loaded_once

    def update(self, snapshot: NetworkSnapshot) -> GateView:
        """Recompute the view; called for every snapshot change."""
        view = evaluate_gate(snapshot)
        self._view = view

        if view.show_offline or view.show_server_error:
            self._was_disconnected = True
        elif view.show_content:
            self._has_loaded_once = True
            if self._was_disconnected:
                self._fire_restored()
        return view

    async def retry(self) -> None:
        """Run a full check; fire the restored callback if it succeeded."""
        status = await self._machine.check_full_connectivity()
        self.update(self._machine.snapshot)
        if status is ConnectionStatus.CONNECTED and self._was_disconnected:
            self._fire_restored()

    def _fire_restored(self) -> None:
        self._was_disconnected = False
        if self._on_connection_restored is None:
            return
        try:
            self._on_connection_restored()
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Connection restored callback failed")
