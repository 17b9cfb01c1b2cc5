import logging

import voluptuous as vol

from homeassistant import config_entries, core
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import (
    ATTR_ENTRY_ID,
    ATTR_MESSAGE,
    ATTR_REACHABLE,
    DOMAIN,
    SERVICE_REPORT_SERVER_STATUS,
)
from .coordinator import ReachabilityCoordinator

PLATFORMS: list[Platform] = [Platform.SENSOR, Platform.BINARY_SENSOR, Platform.BUTTON]
_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

REPORT_SERVER_STATUS_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_REACHABLE): cv.boolean,
        vol.Optional(ATTR_MESSAGE): cv.string,
        vol.Optional(ATTR_ENTRY_ID): cv.string,
    }
)


async def async_setup(hass: core.HomeAssistant, config: dict) -> bool:
    """Set up the integration and its services."""
    hass.data.setdefault(DOMAIN, {})

    async def _async_report_server_status(call: ServiceCall) -> None:
        await async_handle_report_server_status(hass, call)

    hass.services.async_register(
        DOMAIN,
        SERVICE_REPORT_SERVER_STATUS,
        _async_report_server_status,
        schema=REPORT_SERVER_STATUS_SCHEMA,
    )
    return True


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up platform from a ConfigEntry."""
    hass.data.setdefault(DOMAIN, {})
    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )

    coordinator = ReachabilityCoordinator(
        hass,
        dict(entry.data),
        config_entry=entry,
        session=async_get_clientsession(hass),
    )
    # Never fails: an unreachable server is a status, not a setup error
    await coordinator.async_config_entry_first_refresh()
    hass.data[DOMAIN][entry.entry_id] = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def async_handle_report_server_status(hass: HomeAssistant, call: ServiceCall) -> None:
    """Feed a server outcome observed by another component into the state machine."""
    coordinators: dict[str, ReachabilityCoordinator] = hass.data.get(DOMAIN, {})
    entry_id = call.data.get(ATTR_ENTRY_ID)

    if entry_id:
        if entry_id not in coordinators:
            raise HomeAssistantError(f"No server reachability entry with id {entry_id}")
        targets = [coordinators[entry_id]]
    else:
        targets = list(coordinators.values())

    for coordinator in targets:
        _LOGGER.debug(
            "Reported server status for %s: reachable=%s",
            coordinator.base_url, call.data[ATTR_REACHABLE],
        )
        coordinator.machine.report_server_reachability(
            call.data[ATTR_REACHABLE], call.data.get(ATTR_MESSAGE)
        )


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update."""
    # Reload the integration when the options change.
    await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        coordinator = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
        if coordinator is not None:
            await coordinator.async_shutdown()
    return unload_ok
