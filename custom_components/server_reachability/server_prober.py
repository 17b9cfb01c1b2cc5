"""
Server health probe for the configured backend.

Issues one bounded-time GET against a cheap endpoint and classifies the
outcome. Only the status code and transport errors matter; the body is
never read. This module never raises.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import socket
from enum import Enum

import aiohttp

from .const import (
    DEFAULT_HEALTH_ENDPOINT,
    HEALTH_QUERY_PARAMS,
    MESSAGE_SERVER_TIMEOUT,
    MESSAGE_SERVER_UNAVAILABLE,
    MESSAGE_SERVER_UNRESOLVED,
    PROBE_TIMEOUT,
    SERVER_ERROR_STATUS,
)

_LOGGER = logging.getLogger(__name__)


class ProbeOutcome(str, Enum):
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    # The probe failed in a way that does not say whether the server is up
    # (e.g. name resolution failed). The state machine decides using the
    # device state re-read after the probe.
    INCONCLUSIVE = "inconclusive"


@dataclasses.dataclass(frozen=True)
class ProbeResult:
    outcome: ProbeOutcome
    status_code: int | None = None
    message: str | None = None

    @property
    def reachable(self) -> bool:
        return self.outcome is ProbeOutcome.REACHABLE


def build_health_url(base_url: str, endpoint: str = DEFAULT_HEALTH_ENDPOINT) -> str:
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"


def classify_status(status: int) -> ProbeResult:
    """Any HTTP response below 500 (4xx included) means the server is up."""
    if status < SERVER_ERROR_STATUS:
        return ProbeResult(ProbeOutcome.REACHABLE, status_code=status)
    return ProbeResult(
        ProbeOutcome.UNREACHABLE,
        status_code=status,
        message=f"{MESSAGE_SERVER_UNAVAILABLE} (HTTP {status})",
    )


class ServerHealthProber:
    """
    Probes GET <base_url>/<endpoint>?limit=1 with a hard timeout.

    When no session is injected a short-lived ClientSession is opened per
    probe and closed afterwards, so a timed-out request never outlives it.
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str = DEFAULT_HEALTH_ENDPOINT,
        timeout: float = PROBE_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = build_health_url(base_url, endpoint)
        self._timeout = timeout
        self._session = session

    @property
    def url(self) -> str:
        return self._url

    @property
    def timeout(self) -> float:
        return self._timeout

    async def probe(self) -> ProbeResult:
        """Run one probe. Timeouts and transport errors become results."""
        timeout_config = aiohttp.ClientTimeout(total=self._timeout)
        try:
            if self._session is not None:
                return await self._request(self._session, timeout_config)
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                return await self._request(session, timeout_config)

        except (asyncio.TimeoutError, TimeoutError):
            _LOGGER.warning("Timeout after %ss while probing %s", self._timeout, self._url)
            return ProbeResult(ProbeOutcome.UNREACHABLE, message=MESSAGE_SERVER_TIMEOUT)

        except aiohttp.ClientConnectorError as exc:
            if isinstance(exc.os_error, socket.gaierror):
                _LOGGER.warning("Could not resolve host for %s: %s", self._url, exc)
                return ProbeResult(ProbeOutcome.INCONCLUSIVE, message=MESSAGE_SERVER_UNRESOLVED)
            _LOGGER.warning("Connection to %s failed: %s", self._url, exc)
            return ProbeResult(ProbeOutcome.UNREACHABLE, message=MESSAGE_SERVER_UNAVAILABLE)

        except aiohttp.ClientError as exc:
            _LOGGER.warning("Transport error while probing %s: %s", self._url, exc)
            return ProbeResult(ProbeOutcome.UNREACHABLE, message=MESSAGE_SERVER_UNAVAILABLE)

        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Unexpected error while probing %s: %s", self._url, exc)
            return ProbeResult(ProbeOutcome.UNREACHABLE, message=MESSAGE_SERVER_UNAVAILABLE)

    async def _request(self, session: aiohttp.ClientSession, timeout_config: aiohttp.ClientTimeout) -> ProbeResult:
        async with session.get(self._url, params=HEALTH_QUERY_PARAMS, timeout=timeout_config) as response:
            result = classify_status(response.status)
        _LOGGER.debug("Probe %s returned HTTP %s (%s)", self._url, result.status_code, result.outcome.value)
        return result
