"""
Platform for the retry button.
Pressing it behaves like the banner's retry action: the banner hides at once
and a full connectivity check runs.
"""
from __future__ import annotations

import logging

from homeassistant import config_entries
from homeassistant.components.button import ButtonEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import ReachabilityCoordinator

_LOGGER = logging.getLogger(__name__)


class RetryConnectionButton(CoordinatorEntity[ReachabilityCoordinator], ButtonEntity):

    def __init__(self, coordinator: ReachabilityCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"{DOMAIN}_{coordinator.guid}_retry"
        self._attr_name = f"{coordinator.entry_name} Retry Connection"
        self._attr_icon = "mdi:refresh"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.device_info

    async def async_press(self) -> None:
        """Run the retry; re-presses within the guard window are ignored."""
        _LOGGER.debug("Retry requested for %s", self.coordinator.base_url)
        await self.coordinator.async_retry()


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add the retry button for passed config_entry in HA."""
    coordinator: ReachabilityCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    async_add_entities([RetryConnectionButton(coordinator)])
