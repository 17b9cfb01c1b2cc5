"""
DataUpdateCoordinator for the Server Reachability integration.

Responsibilities:
- Own the observer, prober, state machine, gate and banner for one config
  entry and wire them together.
- Push every NetworkSnapshot to entities as soon as the state machine
  produces it (push-only, no update_interval).
- Turn HA refresh requests into full connectivity checks.
- Fire EVENT_CONNECTION_RESTORED when a gated outage ends.
"""
from __future__ import annotations

import logging
from typing import Callable

import aiohttp

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .banner import ConnectionBanner
from .const import (
    CONF_BASE_URL,
    CONF_ENTRY_NAME,
    CONF_GUID,
    CONF_HEALTH_ENDPOINT,
    CONF_INTERNET_CHECK_HOST,
    DEFAULT_ENTRY_NAME,
    DEFAULT_HEALTH_ENDPOINT,
    DOMAIN,
    EVENT_CONNECTION_RESTORED,
    VERSION,
)
from .device_observer import HostConnectivityObserver
from .gate import ConnectivityGate
from .network_snapshot import NetworkSnapshot
from .server_prober import ServerHealthProber
from .state_machine import ConnectivityStateMachine

_LOGGER = logging.getLogger(__name__)


class ReachabilityCoordinator(DataUpdateCoordinator[NetworkSnapshot]):
    """
    Coordinator for one monitored backend.

    The state machine is the source of truth; this class only relays its
    snapshots to HA and routes user actions back into it.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_data: dict,
        config_entry: ConfigEntry | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            # Push-only: the state machine notifies us on every change
            update_interval=None,
        )
        self._entry_data = entry_data

        self.observer = HostConnectivityObserver(
            internet_check_host=entry_data.get(CONF_INTERNET_CHECK_HOST),
        )
        self.prober = ServerHealthProber(
            entry_data[CONF_BASE_URL],
            entry_data.get(CONF_HEALTH_ENDPOINT) or DEFAULT_HEALTH_ENDPOINT,
            session=session,
        )
        self.machine = ConnectivityStateMachine(self.observer, self.prober)
        self.gate = ConnectivityGate(self.machine, on_connection_restored=self._on_connection_restored)
        self.banner = ConnectionBanner(
            lambda: self.machine.snapshot,
            self.gate.retry,
            on_change=self.async_update_listeners,
        )

        self._remove_machine_listener = self.machine.add_listener(self._handle_snapshot)
        self._unsubscribe: Callable[[], None] | None = None

        self.data = self.machine.snapshot

    # ------------------------------------------------------------------
    # HA entry point
    # ------------------------------------------------------------------

    async def _async_update_data(self) -> NetworkSnapshot:
        """
        First call initializes the state machine (device read, observer
        subscription, first probe). Later calls are manual retries.
        """
        if self._unsubscribe is None:
            self._unsubscribe = await self.machine.initialize()
        else:
            await self.gate.retry()
        return self.machine.snapshot

    def _handle_snapshot(self, snapshot: NetworkSnapshot) -> None:
        self.gate.update(snapshot)
        self.banner.update(snapshot)
        self.async_set_updated_data(snapshot)

    def _on_connection_restored(self) -> None:
        _LOGGER.info("Connection to %s restored", self.base_url)
        self.hass.bus.async_fire(
            EVENT_CONNECTION_RESTORED,
            {"guid": self.guid, "base_url": self.base_url},
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def async_retry(self) -> None:
        """Retry from the banner: optimistic hide, full check, re-entry guard."""
        await self.banner.retry()

    # ------------------------------------------------------------------
    # Entity helpers
    # ------------------------------------------------------------------

    @property
    def guid(self) -> str:
        return self._entry_data[CONF_GUID]

    @property
    def entry_name(self) -> str:
        return self._entry_data.get(CONF_ENTRY_NAME) or DEFAULT_ENTRY_NAME

    @property
    def base_url(self) -> str:
        return self._entry_data[CONF_BASE_URL]

    @property
    def entry_data(self) -> dict:
        return self._entry_data

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(
            identifiers={(DOMAIN, self.guid)},
            name=self.entry_name,
            manufacturer="Server Reachability",
            model=self.prober.url,
            sw_version=VERSION,
            entry_type=DeviceEntryType.SERVICE,
            configuration_url=self.base_url,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Clean up all resources owned by this coordinator."""
        self.banner.shutdown()
        self._remove_machine_listener()
        await self.machine.async_shutdown()
        self._unsubscribe = None
        await super().async_shutdown()
