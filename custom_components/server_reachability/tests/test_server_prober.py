"""
Unit tests for server_prober.py.

Coverage:
- build_health_url joins base URL and endpoint with exactly one slash
- classify_status: 2xx/3xx/4xx reachable, 5xx unreachable with message
- ServerHealthProber.probe with a per-probe ClientSession (patched) and with an injected session
- Timeout → unreachable with timeout message, session still closed
- DNS failure → inconclusive; refused connection → unreachable
- Unexpected exceptions never escape probe()
"""

from __future__ import annotations

import asyncio
import socket
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp

from custom_components.server_reachability.const import (
    MESSAGE_SERVER_TIMEOUT,
    MESSAGE_SERVER_UNAVAILABLE,
    MESSAGE_SERVER_UNRESOLVED,
)
from custom_components.server_reachability.server_prober import (
    ProbeOutcome,
    ServerHealthProber,
    build_health_url,
    classify_status,
)

SESSION_PATH = "custom_components.server_reachability.server_prober.aiohttp.ClientSession"


def _mock_session(status: int | None = None, get_side_effect: Exception | None = None) -> MagicMock:
    mock_resp = AsyncMock()
    mock_resp.status = status
    mock_resp.__aenter__ = AsyncMock(return_value=mock_resp)
    mock_resp.__aexit__ = AsyncMock(return_value=False)

    mock_session = MagicMock()
    if get_side_effect is not None:
        mock_session.get = MagicMock(side_effect=get_side_effect)
    else:
        mock_session.get = MagicMock(return_value=mock_resp)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return mock_session


def _connector_error(os_error: OSError) -> aiohttp.ClientConnectorError:
    return aiohttp.ClientConnectorError(MagicMock(host="api.example.com", port=443, ssl=True), os_error)


class TestHelpers(unittest.TestCase):

    def test_build_health_url(self):
        self.assertEqual(
            build_health_url("https://api.example.com/", "/api/categories"),
            "https://api.example.com/api/categories",
        )
        self.assertEqual(
            build_health_url("http://localhost:1337", "health"),
            "http://localhost:1337/health",
        )

    def test_success_and_client_errors_are_reachable(self):
        for status in (200, 204, 301, 400, 401, 404, 499):
            result = classify_status(status)
            self.assertIs(result.outcome, ProbeOutcome.REACHABLE, status)
            self.assertTrue(result.reachable)
            self.assertIsNone(result.message)

    def test_server_errors_are_unreachable(self):
        for status in (500, 502, 503, 504):
            result = classify_status(status)
            self.assertIs(result.outcome, ProbeOutcome.UNREACHABLE, status)
            self.assertFalse(result.reachable)
            self.assertIn(str(status), result.message)
            self.assertEqual(result.status_code, status)


class TestServerHealthProber(unittest.IsolatedAsyncioTestCase):

    async def test_http_200_is_reachable(self):
        prober = ServerHealthProber("https://api.example.com", "api/categories")
        mock_session = _mock_session(status=200)

        with patch(SESSION_PATH, return_value=mock_session):
            result = await prober.probe()

        self.assertTrue(result.reachable)
        self.assertEqual(result.status_code, 200)
        args, kwargs = mock_session.get.call_args
        self.assertEqual(args[0], "https://api.example.com/api/categories")
        self.assertEqual(kwargs["params"], {"limit": "1"})
        mock_session.__aexit__.assert_awaited()

    async def test_http_404_is_reachable(self):
        prober = ServerHealthProber("https://api.example.com")
        with patch(SESSION_PATH, return_value=_mock_session(status=404)):
            result = await prober.probe()
        self.assertTrue(result.reachable)

    async def test_http_503_is_unreachable(self):
        prober = ServerHealthProber("https://api.example.com")
        with patch(SESSION_PATH, return_value=_mock_session(status=503)):
            result = await prober.probe()
        self.assertIs(result.outcome, ProbeOutcome.UNREACHABLE)
        self.assertIn("503", result.message)

    async def test_timeout_is_unreachable_and_releases_session(self):
        prober = ServerHealthProber("https://api.example.com", timeout=8)
        mock_session = _mock_session(get_side_effect=asyncio.TimeoutError())

        with patch(SESSION_PATH, return_value=mock_session) as session_cls:
            result = await prober.probe()

        self.assertIs(result.outcome, ProbeOutcome.UNREACHABLE)
        self.assertEqual(result.message, MESSAGE_SERVER_TIMEOUT)
        mock_session.__aexit__.assert_awaited()
        timeout = session_cls.call_args.kwargs["timeout"]
        self.assertEqual(timeout.total, 8)

    async def test_dns_failure_is_inconclusive(self):
        prober = ServerHealthProber("https://api.example.com")
        error = _connector_error(socket.gaierror(-2, "Name or service not known"))

        with patch(SESSION_PATH, return_value=_mock_session(get_side_effect=error)):
            result = await prober.probe()

        self.assertIs(result.outcome, ProbeOutcome.INCONCLUSIVE)
        self.assertEqual(result.message, MESSAGE_SERVER_UNRESOLVED)

    async def test_connection_refused_is_unreachable(self):
        prober = ServerHealthProber("https://api.example.com")
        error = _connector_error(ConnectionRefusedError(111, "Connection refused"))

        with patch(SESSION_PATH, return_value=_mock_session(get_side_effect=error)):
            result = await prober.probe()

        self.assertIs(result.outcome, ProbeOutcome.UNREACHABLE)
        self.assertEqual(result.message, MESSAGE_SERVER_UNAVAILABLE)

    async def test_client_error_is_unreachable(self):
        prober = ServerHealthProber("https://api.example.com")
        error = aiohttp.ServerDisconnectedError()

        with patch(SESSION_PATH, return_value=_mock_session(get_side_effect=error)):
            result = await prober.probe()

        self.assertIs(result.outcome, ProbeOutcome.UNREACHABLE)

    async def test_unexpected_error_never_raises(self):
        prober = ServerHealthProber("https://api.example.com")

        with patch(SESSION_PATH, return_value=_mock_session(get_side_effect=ValueError("bad url"))):
            result = await prober.probe()

        self.assertIs(result.outcome, ProbeOutcome.UNREACHABLE)
        self.assertEqual(result.message, MESSAGE_SERVER_UNAVAILABLE)

    async def test_injected_session_is_used_and_not_closed(self):
        mock_session = _mock_session(status=200)
        prober = ServerHealthProber("https://api.example.com", session=mock_session)

        with patch(SESSION_PATH) as session_cls:
            result = await prober.probe()

        self.assertTrue(result.reachable)
        session_cls.assert_not_called()
        mock_session.get.assert_called_once()
        mock_session.__aexit__.assert_not_awaited()
        self.assertEqual(mock_session.get.call_args.kwargs["timeout"].total, prober.timeout)

    def test_url_property(self):
        prober = ServerHealthProber("https://api.example.com/", "api/categories")
        self.assertEqual(prober.url, "https://api.example.com/api/categories")


if __name__ == '__main__':
    unittest.main()
