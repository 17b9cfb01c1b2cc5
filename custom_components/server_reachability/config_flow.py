"""Config flow for Server Reachability integration."""
from __future__ import annotations
import logging
import uuid
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    CONF_BASE_URL,
    CONF_ENTRY_NAME,
    CONF_GUID,
    CONF_HEALTH_ENDPOINT,
    CONF_INTERNET_CHECK_HOST,
    DEFAULT_ENTRY_NAME,
    DEFAULT_HEALTH_ENDPOINT,
    DOMAIN,
)

_LOGGER = logging.getLogger(__name__)
CONFIG_SCHEMA = vol.Schema(
            {
                vol.Required(CONF_ENTRY_NAME, default=DEFAULT_ENTRY_NAME): cv.string,
                vol.Required(CONF_BASE_URL, default=''): cv.string,
                vol.Required(CONF_HEALTH_ENDPOINT, default=DEFAULT_HEALTH_ENDPOINT): cv.string,
                vol.Optional(CONF_INTERNET_CHECK_HOST, default=''): cv.string,
            }
        )


def _validate_input(data: Dict[str, Any]) -> Dict[str, str]:
    """Return a form error dict; empty when the input is usable."""
    errors: Dict[str, str] = {}
    # If entry_name is null or empty string, add error
    if not data.get(CONF_ENTRY_NAME):
        errors['base'] = 'entry_name_required'
        return errors
    try:
        cv.url(data.get(CONF_BASE_URL) or '')
    except vol.Invalid:
        errors['base'] = 'invalid_url'
    return errors


def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    """Strip whitespace and trailing slashes so URLs join cleanly."""
    return {
        CONF_ENTRY_NAME: data[CONF_ENTRY_NAME].strip(),
        CONF_BASE_URL: data[CONF_BASE_URL].strip().rstrip('/'),
        CONF_HEALTH_ENDPOINT: (data.get(CONF_HEALTH_ENDPOINT) or DEFAULT_HEALTH_ENDPOINT).strip(),
        CONF_INTERNET_CHECK_HOST: (data.get(CONF_INTERNET_CHECK_HOST) or '').strip(),
    }


def _base_url_taken(hass, base_url: str, entry_id: str) -> bool:
    """True when another entry of this domain already monitors base_url."""
    for entry in hass.config_entries.async_entries(DOMAIN):
        if entry.entry_id == entry_id:
            continue
        if entry.options.get(CONF_BASE_URL, entry.data.get(CONF_BASE_URL)) == base_url:
            return True
    return False


class CustomFlow(config_entries.ConfigFlow, domain=DOMAIN):
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            errors = _validate_input(user_input)
            if not errors:
                self.data = _normalize(user_input)
                # One entry per monitored server
                self._async_abort_entries_match({CONF_BASE_URL: self.data[CONF_BASE_URL]})
                # Create new guid for the entry
                self.data[CONF_GUID] = str(uuid.uuid4())
                _LOGGER.debug("Creating entry for %s", self.data[CONF_BASE_URL])
                return self.async_create_entry(title=f"{self.data[CONF_ENTRY_NAME]}", data=self.data)

        return self.async_show_form(step_id="user", data_schema=CONFIG_SCHEMA, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handles options flow for the component."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self.entry = config_entry

    def _current(self, key: str, fallback: Any) -> Any:
        """Options override data, data overrides the fallback."""
        if key in self.entry.options:
            return self.entry.options[key]
        if key in self.entry.data:
            return self.entry.data[key]
        return fallback

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}

        if user_input is not None:
            errors = _validate_input(user_input)
            new_data = _normalize(user_input) if not errors else {}
            if not errors and _base_url_taken(self.hass, new_data[CONF_BASE_URL], self.entry.entry_id):
                errors['base'] = 'already_configured'
            if not errors:
                new_data[CONF_GUID] = self.entry.data[CONF_GUID]

                # Rename the entry in the UI; the update listener reloads it
                self.hass.config_entries.async_update_entry(
                    self.entry,
                    data=new_data,
                    title=new_data[CONF_ENTRY_NAME],
                )

                return self.async_create_entry(title=f"{new_data[CONF_ENTRY_NAME]}", data=new_data)

        OPTIONS_SCHEMA = vol.Schema(
            {
                vol.Required(CONF_ENTRY_NAME, default=self._current(CONF_ENTRY_NAME, '')): cv.string,
                vol.Required(CONF_BASE_URL, default=self._current(CONF_BASE_URL, '')): cv.string,
                vol.Required(
                    CONF_HEALTH_ENDPOINT,
                    default=self._current(CONF_HEALTH_ENDPOINT, DEFAULT_HEALTH_ENDPOINT),
                ): cv.string,
                vol.Optional(
                    CONF_INTERNET_CHECK_HOST,
                    default=self._current(CONF_INTERNET_CHECK_HOST, ''),
                ): cv.string,
            }
        )
        return self.async_show_form(step_id="init", data_schema=OPTIONS_SCHEMA, errors=errors)
