"""
Platform for connectivity binary sensors.
Each sensor mirrors one directive of the connectivity gate, the raw device
transport, or the delayed connection banner.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable

from homeassistant import config_entries
from homeassistant.components.binary_sensor import BinarySensorDeviceClass, BinarySensorEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import ReachabilityCoordinator

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ReachabilityBinarySensorDescription:
    key: str
    name: str
    device_class: BinarySensorDeviceClass
    icon: str
    value_fn: Callable[[ReachabilityCoordinator], bool]


BINARY_SENSORS: tuple[ReachabilityBinarySensorDescription, ...] = (
    ReachabilityBinarySensorDescription(
        key="server_connectivity",
        name="Server Connectivity",
        device_class=BinarySensorDeviceClass.CONNECTIVITY,
        icon="mdi:server-network",
        value_fn=lambda c: c.gate.view.show_content,
    ),
    ReachabilityBinarySensorDescription(
        key="offline",
        name="Offline",
        device_class=BinarySensorDeviceClass.PROBLEM,
        icon="mdi:cloud-off-outline",
        value_fn=lambda c: c.gate.view.show_offline,
    ),
    ReachabilityBinarySensorDescription(
        key="server_error",
        name="Server Error",
        device_class=BinarySensorDeviceClass.PROBLEM,
        icon="mdi:server-off",
        value_fn=lambda c: c.gate.view.show_server_error,
    ),
    ReachabilityBinarySensorDescription(
        key="network",
        name="Network",
        device_class=BinarySensorDeviceClass.CONNECTIVITY,
        icon="mdi:lan",
        value_fn=lambda c: c.data.device_online,
    ),
)


class ReachabilityBinarySensor(CoordinatorEntity[ReachabilityCoordinator], BinarySensorEntity):
    """Binary sensor driven by one description's value_fn."""

    def __init__(
        self,
        coordinator: ReachabilityCoordinator,
        description: ReachabilityBinarySensorDescription,
    ) -> None:
        super().__init__(coordinator)
        self._description = description
        self._attr_unique_id = f"{DOMAIN}_{coordinator.guid}_{description.key}"
        self._attr_name = f"{coordinator.entry_name} {description.name}"
        self._attr_icon = description.icon
        self._attr_device_class = description.device_class

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.device_info

    @property
    def is_on(self) -> bool:
        return self._description.value_fn(self.coordinator)


class ConnectionBannerSensor(CoordinatorEntity[ReachabilityCoordinator], BinarySensorEntity):
    """
    On while the connection banner is visible.
    Stays off for short blips thanks to the banner's display delay.
    """

    _attr_device_class = BinarySensorDeviceClass.PROBLEM

    def __init__(self, coordinator: ReachabilityCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"{DOMAIN}_{coordinator.guid}_banner"
        self._attr_name = f"{coordinator.entry_name} Connection Banner"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.device_info

    @property
    def is_on(self) -> bool:
        return self.coordinator.banner.visible

    @property
    def icon(self) -> str | None:
        if self.coordinator.banner.visible:
            return "mdi:alert-circle"
        return "mdi:check-circle-outline"

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        content = self.coordinator.banner.content
        if content is None:
            return {"message": None, "status": None, "show_retry": False}
        return {
            "message": content.message,
            "status": content.status.value,
            "show_retry": content.show_retry,
        }


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add binary sensors for passed config_entry in HA."""
    coordinator: ReachabilityCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    entities: list[BinarySensorEntity] = [
        ReachabilityBinarySensor(coordinator, description) for description in BINARY_SENSORS
    ]
    entities.append(ConnectionBannerSensor(coordinator))
    _LOGGER.debug("Adding %d binary sensors for %s", len(entities), coordinator.base_url)
    async_add_entities(entities)
