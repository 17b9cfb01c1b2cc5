"""
Unit tests for gate.py.

Coverage:
- evaluate_gate: exactly one directive after loading, none while loading/checking
- ConnectivityGate.update tracks was_disconnected / has_loaded_once
- on_connection_restored fires once per recovery, never on first connect
- retry() runs a full check and reports recovery, with or without a snapshot listener
"""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from custom_components.server_reachability.gate import ConnectivityGate, evaluate_gate
from custom_components.server_reachability.network_snapshot import ConnectionStatus, NetworkSnapshot

from .test_common import OFFLINE, ONLINE, SERVER_DOWN, FakeObserver, FakeProber, make_machine


def _snapshot(status: ConnectionStatus, is_loading: bool = False, **kwargs) -> NetworkSnapshot:
    return NetworkSnapshot(status=status, is_loading=is_loading, **kwargs)


class TestEvaluateGate(unittest.TestCase):

    def test_loading_shows_nothing_else(self):
        view = evaluate_gate(NetworkSnapshot())
        self.assertTrue(view.show_loading)
        self.assertFalse(view.show_content or view.show_offline or view.show_server_error)

    def test_checking_status_counts_as_loading(self):
        view = evaluate_gate(_snapshot(ConnectionStatus.CHECKING, is_loading=False))
        self.assertTrue(view.show_loading)
        self.assertFalse(view.show_content)

    def test_exactly_one_directive_after_loading(self):
        expected = {
            ConnectionStatus.CONNECTED: "show_content",
            ConnectionStatus.OFFLINE: "show_offline",
            ConnectionStatus.SERVER_UNAVAILABLE: "show_server_error",
        }
        for status, directive in expected.items():
            view = evaluate_gate(_snapshot(status))
            flags = {
                "show_content": view.show_content,
                "show_offline": view.show_offline,
                "show_server_error": view.show_server_error,
            }
            self.assertEqual([name for name, on in flags.items() if on], [directive], status)
            self.assertFalse(view.show_loading)

    def test_server_error_message_is_passed_through(self):
        view = evaluate_gate(_snapshot(ConnectionStatus.SERVER_UNAVAILABLE, server_error_message="down"))
        self.assertEqual(view.server_error_message, "down")


class TestConnectivityGate(unittest.TestCase):

    def _gate(self, callback=None) -> ConnectivityGate:
        return ConnectivityGate(make_machine(), on_connection_restored=callback)

    def test_initial_view_is_loading(self):
        gate = self._gate()
        self.assertTrue(gate.view.show_loading)
        self.assertFalse(gate.has_loaded_once)
        self.assertFalse(gate.was_disconnected)

    def test_first_connect_does_not_fire_restored(self):
        callback = MagicMock()
        gate = self._gate(callback)

        gate.update(_snapshot(ConnectionStatus.CONNECTED))

        self.assertTrue(gate.has_loaded_once)
        callback.assert_not_called()

    def test_recovery_fires_once(self):
        callback = MagicMock()
        gate = self._gate(callback)

        gate.update(_snapshot(ConnectionStatus.CONNECTED))
        gate.update(_snapshot(ConnectionStatus.OFFLINE))
        self.assertTrue(gate.was_disconnected)
        gate.update(_snapshot(ConnectionStatus.CONNECTED))
        gate.update(_snapshot(ConnectionStatus.CONNECTED, connection_type="cellular"))

        callback.assert_called_once()
        self.assertFalse(gate.was_disconnected)

    def test_recovery_from_server_error_fires(self):
        callback = MagicMock()
        gate = self._gate(callback)

        gate.update(_snapshot(ConnectionStatus.SERVER_UNAVAILABLE))
        gate.update(_snapshot(ConnectionStatus.CONNECTED))

        callback.assert_called_once()

    def test_loading_between_problem_and_content_keeps_flag(self):
        gate = self._gate()

        gate.update(_snapshot(ConnectionStatus.OFFLINE))
        gate.update(_snapshot(ConnectionStatus.CHECKING))

        self.assertTrue(gate.was_disconnected)

    def test_callback_error_is_isolated(self):
        gate = self._gate(MagicMock(side_effect=RuntimeError("boom")))

        gate.update(_snapshot(ConnectionStatus.OFFLINE))
        with self.assertLogs("custom_components.server_reachability.gate", level="ERROR"):
            view = gate.update(_snapshot(ConnectionStatus.CONNECTED))

        self.assertTrue(view.show_content)
        self.assertFalse(gate.was_disconnected)


class TestGateRetry(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.observer = FakeObserver(OFFLINE)
        self.prober = FakeProber()
        self.machine = make_machine(self.observer, self.prober)
        self.callback = MagicMock()
        self.gate = ConnectivityGate(self.machine, on_connection_restored=self.callback)

    async def asyncTearDown(self):
        await self.machine.async_shutdown()

    async def test_retry_reports_recovery_without_listener(self):
        await self.machine.initialize()
        self.gate.update(self.machine.snapshot)
        self.observer.state = ONLINE

        await self.gate.retry()

        self.assertTrue(self.gate.view.show_content)
        self.callback.assert_called_once()

    async def test_retry_with_listener_fires_once(self):
        self.machine.add_listener(self.gate.update)
        await self.machine.initialize()
        self.assertTrue(self.gate.view.show_offline)
        self.observer.state = ONLINE

        await self.gate.retry()

        self.callback.assert_called_once()

    async def test_failed_retry_keeps_problem(self):
        self.machine.add_listener(self.gate.update)
        await self.machine.initialize()
        self.observer.state = ONLINE
        self.prober.result = SERVER_DOWN

        await self.gate.retry()

        self.assertTrue(self.gate.view.show_server_error)
        self.assertTrue(self.gate.was_disconnected)
        self.callback.assert_not_called()


if __name__ == '__main__':
    unittest.main()
