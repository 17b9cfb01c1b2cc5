"""
Platform for the connection status sensor.
Exposes the canonical ConnectionStatus plus the raw snapshot fields as
attributes for automations that need finer control than the binary sensors.
"""
from __future__ import annotations

import logging
from typing import Any

from homeassistant import config_entries
from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import ReachabilityCoordinator
from .network_snapshot import ConnectionStatus

_LOGGER = logging.getLogger(__name__)

STATUS_ICONS = {
    ConnectionStatus.CHECKING: "mdi:lan-pending",
    ConnectionStatus.CONNECTED: "mdi:lan-connect",
    ConnectionStatus.OFFLINE: "mdi:cloud-off-outline",
    ConnectionStatus.SERVER_UNAVAILABLE: "mdi:server-off",
}


class ConnectionStatusSensor(CoordinatorEntity[ReachabilityCoordinator], SensorEntity):
    """Enum sensor reporting checking / connected / offline / server_unavailable."""

    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = [status.value for status in ConnectionStatus]

    def __init__(self, coordinator: ReachabilityCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"{DOMAIN}_{coordinator.guid}_status"
        self._attr_name = f"{coordinator.entry_name} Connection Status"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.device_info

    @property
    def native_value(self) -> str:
        return self.coordinator.data.status.value

    @property
    def icon(self) -> str | None:
        return STATUS_ICONS.get(self.coordinator.data.status, "mdi:lan-pending")

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        snapshot = self.coordinator.data
        return {
            "is_connected": snapshot.is_connected,
            "is_internet_reachable": snapshot.is_internet_reachable,
            "is_server_reachable": snapshot.is_server_reachable,
            "connection_type": snapshot.connection_type,
            "server_error_message": snapshot.server_error_message,
            "is_loading": snapshot.is_loading,
            "is_checking": snapshot.is_checking,
        }


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add the status sensor for passed config_entry in HA."""
    coordinator: ReachabilityCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    _LOGGER.debug("Adding connection status sensor for %s", coordinator.base_url)
    async_add_entities([ConnectionStatusSensor(coordinator)])
