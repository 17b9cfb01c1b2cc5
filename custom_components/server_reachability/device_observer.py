"""
Device connectivity observer: reports the host's raw network transport state.

Responsibilities:
- Read the current transport state on demand (fetch_once).
- Deliver state changes to a single callback while subscribed (subscribe).

No HA imports and no debouncing: callers decide what a transition means.
"""
from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from typing import Callable, Protocol

import ifaddr

from .const import (
    CONNECTION_TYPE_NONE,
    CONNECTION_TYPE_OTHER,
    CONNECTION_TYPE_UNKNOWN,
    INTERFACE_PREFIX_TO_TYPE,
    INTERNET_CHECK_PORT,
    INTERNET_CHECK_TIMEOUT,
    OBSERVER_POLL_INTERVAL,
    ROUTE_PROBE_ADDRESS,
    ROUTE_PROBE_ADDRESS_V6,
    ROUTE_PROBE_PORT,
)
from .network_snapshot import DeviceState

_LOGGER = logging.getLogger(__name__)

DeviceCallback = Callable[[DeviceState], None]


class DeviceConnectivityObserver(Protocol):
    """Boundary used by the state machine to read device connectivity."""

    async def fetch_once(self) -> DeviceState: ...

    def subscribe(self, callback: DeviceCallback) -> Callable[[], None]: ...


def classify_interface(name: str) -> str:
    """Map a network interface name to a connection type."""
    lowered = name.lower()
    for prefix, connection_type in INTERFACE_PREFIX_TO_TYPE:
        if lowered.startswith(prefix):
            return connection_type
    return CONNECTION_TYPE_OTHER


def route_source_address(
    address: str = ROUTE_PROBE_ADDRESS,
    port: int = ROUTE_PROBE_PORT,
    family: int = socket.AF_INET,
) -> str | None:
    """
    Return the local address the OS would use to reach address, or None.

    Connecting a UDP socket only consults the routing table; nothing is sent.
    Loopback and unspecified addresses mean there is no usable transport.
    """
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.connect((address, port))
        local_ip = sock.getsockname()[0]
    except OSError:
        return None
    finally:
        sock.close()

    parsed = ipaddress.ip_address(local_ip.split("%", 1)[0])
    if parsed.is_loopback or parsed.is_unspecified:
        return None
    return local_ip


def default_route_address() -> str | None:
    """Source address of the IPv4 default route, else of the IPv6 one."""
    local_ip = route_source_address()
    if local_ip is None:
        local_ip = route_source_address(ROUTE_PROBE_ADDRESS_V6, ROUTE_PROBE_PORT, socket.AF_INET6)
    return local_ip


def connection_type_for(local_ip: str) -> str:
    """Find the adapter owning local_ip and classify it by name."""
    for adapter in ifaddr.get_adapters():
        for ip in adapter.ips:
            # ifaddr gives IPv6 addresses as (address, flowinfo, scope_id)
            address = ip.ip if ip.is_IPv4 else ip.ip[0]
            if address == local_ip:
                return classify_interface(adapter.nice_name or adapter.name)
    return CONNECTION_TYPE_UNKNOWN


def tcp_reachable(host: str, port: int = INTERNET_CHECK_PORT, timeout: float = INTERNET_CHECK_TIMEOUT) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class HostConnectivityObserver:
    """
    Observes the network transport of the host running this code.

    Internet reachability stays unknown (None) unless internet_check_host is
    given, in which case a short TCP connect to it decides True/False.
    """

    def __init__(
        self,
        internet_check_host: str | None = None,
        poll_interval: float = OBSERVER_POLL_INTERVAL,
    ) -> None:
        self._internet_check_host = internet_check_host or None
        self._poll_interval = poll_interval

    async def fetch_once(self) -> DeviceState:
        """Read the current device state without blocking the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read_host_state)

    def read_host_state(self) -> DeviceState:
        local_ip = default_route_address()
        if local_ip is None:
            return DeviceState(
                is_connected=False,
                is_internet_reachable=False,
                connection_type=CONNECTION_TYPE_NONE,
            )

        reachable: bool | None = None
        if self._internet_check_host:
            reachable = tcp_reachable(self._internet_check_host)

        return DeviceState(
            is_connected=True,
            is_internet_reachable=reachable,
            connection_type=connection_type_for(local_ip),
        )

    def subscribe(self, callback: DeviceCallback) -> Callable[[], None]:
        """
        Start polling the host and call callback whenever the reading changes.

        Returns an unsubscribe function; calling it more than once is a no-op.
        """
        task = asyncio.ensure_future(self._poll(callback))

        def unsubscribe() -> None:
            if not task.done():
                task.cancel()

        return unsubscribe

    async def _poll(self, callback: DeviceCallback) -> None:
        last_state: DeviceState | None = None
        while True:
            try:
                state = await self.fetch_once()
            except Exception as exc:  # noqa: BLE001
                _LOGGER.debug("Failed to read host network state: %s", exc)
            else:
                if state != last_state:
                    last_state = state
                    try:
                        callback(state)
                    except Exception:  # noqa: BLE001
                        _LOGGER.exception("Device connectivity callback failed")
            await asyncio.sleep(self._poll_interval)
