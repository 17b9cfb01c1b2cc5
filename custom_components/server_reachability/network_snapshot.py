"""
NetworkSnapshot: immutable view of device and server connectivity.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses
from enum import Enum

from .const import CONNECTION_TYPE_UNKNOWN


class ConnectionStatus(str, Enum):
    """
    Canonical connectivity status.

    Exactly one value at a time. OFFLINE always wins over SERVER_UNAVAILABLE
    because the device-level signal is authoritative.
    """

    CHECKING = "checking"
    CONNECTED = "connected"
    OFFLINE = "offline"
    SERVER_UNAVAILABLE = "server_unavailable"


# Statuses that block content and surface an error to the user
PROBLEM_STATUSES = (ConnectionStatus.OFFLINE, ConnectionStatus.SERVER_UNAVAILABLE)


@dataclasses.dataclass(frozen=True)
class DeviceState:
    """One reading of the host's network transport."""

    is_connected: bool
    # None means the platform could not tell; treated as reachable
    is_internet_reachable: bool | None = None
    connection_type: str = CONNECTION_TYPE_UNKNOWN

    @property
    def is_online(self) -> bool:
        return self.is_connected and self.is_internet_reachable is not False


@dataclasses.dataclass(frozen=True)
class NetworkSnapshot:
    """
    Typed, copy-on-write snapshot of the connectivity state.

    Always replace via dataclasses.replace(); never mutate in place.
    Timestamps are time.monotonic() seconds.
    """

    # Device level
    is_connected: bool = True
    is_internet_reachable: bool | None = None
    connection_type: str = CONNECTION_TYPE_UNKNOWN

    # Server level (result of the last applied probe)
    is_server_reachable: bool = True
    server_error_message: str | None = None

    status: ConnectionStatus = ConnectionStatus.CHECKING

    # True until the first status has been determined
    is_loading: bool = True
    # True while an explicit full check (user retry) is running
    is_checking: bool = False

    last_checked_at: float | None = None
    last_server_check_at: float | None = None

    @property
    def device_online(self) -> bool:
        return self.is_connected and self.is_internet_reachable is not False

    @property
    def is_fully_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    @property
    def is_offline(self) -> bool:
        return self.status is ConnectionStatus.OFFLINE

    @property
    def is_server_down(self) -> bool:
        return self.status is ConnectionStatus.SERVER_UNAVAILABLE
