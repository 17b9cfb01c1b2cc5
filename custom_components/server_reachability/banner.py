"""
Connection banner: non-blocking warning with delayed appearance.

The banner must not flash for short blips: it only shows after the problem
has lasted BANNER_OFFLINE_DELAY (offline) or BANNER_SERVER_DELAY (server
unavailable), and the status is re-checked when the delay expires. Timers are
asyncio TimerHandles so they can be cancelled on recovery and on shutdown.

No HA imports.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Awaitable, Callable

from .const import BANNER_MESSAGES, BANNER_OFFLINE_DELAY, BANNER_SERVER_DELAY, RETRY_GUARD_INTERVAL
from .network_snapshot import ConnectionStatus, NetworkSnapshot, PROBLEM_STATUSES

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BannerContent:
    status: ConnectionStatus
    message: str
    show_retry: bool = True


def problem_status(snapshot: NetworkSnapshot) -> ConnectionStatus | None:
    """The status the banner would report for snapshot, or None if healthy."""
    if snapshot.is_loading or snapshot.status not in PROBLEM_STATUSES:
        return None
    return snapshot.status


class ConnectionBanner:
    """
    Decides when the banner is visible.

    get_snapshot reads the current state at timer expiry, retry runs the full
    connectivity check and on_change is called whenever visibility or content
    changes.
    """

    def __init__(
        self,
        get_snapshot: Callable[[], NetworkSnapshot],
        retry: Callable[[], Awaitable[Any]],
        on_change: Callable[[], None] | None = None,
        offline_delay: float = BANNER_OFFLINE_DELAY,
        server_delay: float = BANNER_SERVER_DELAY,
        retry_guard: float = RETRY_GUARD_INTERVAL,
    ) -> None:
        self._get_snapshot = get_snapshot
        self._retry = retry
        self._on_change = on_change
        self._offline_delay = offline_delay
        self._server_delay = server_delay
        self._retry_guard = retry_guard

        self._content: BannerContent | None = None
        self._pending: asyncio.TimerHandle | None = None
        self._guard: asyncio.TimerHandle | None = None
        self._retrying = False

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def visible(self) -> bool:
        return self._content is not None

    @property
    def content(self) -> BannerContent | None:
        return self._content

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    @property
    def retry_locked(self) -> bool:
        return self._retrying or self._guard is not None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def update(self, snapshot: NetworkSnapshot) -> None:
        """React to a snapshot change."""
        problem = problem_status(snapshot)
        if problem is None:
            self._cancel_pending()
            self._show(None)
            return

        if self._retrying:
            return

        if self._content is not None:
            # Already showing; switch the message without another delay
            self._show(problem)
            return

        if self._pending is not None:
            # Delay counts from when the problem was first observed
            return

        delay = self._offline_delay if problem is ConnectionStatus.OFFLINE else self._server_delay
        self._pending = asyncio.get_running_loop().call_later(delay, self._on_delay_elapsed)
        _LOGGER.debug("Banner for %s scheduled in %ss", problem.value, delay)

    async def retry(self) -> None:
        """
        Hide the banner immediately and re-run the full check.

        Re-entry is ignored while the check runs and for retry_guard seconds
        after it finishes.
        """
        if self.retry_locked:
            _LOGGER.debug("Banner retry ignored, previous retry still guarded")
            return

        self._retrying = True
        self._cancel_pending()
        self._show(None)
        try:
            await self._retry()
        finally:
            self._retrying = False
            self._guard = asyncio.get_running_loop().call_later(self._retry_guard, self._release_guard)

        # The retry confirmed the problem, no need to delay again
        self._show(problem_status(self._get_snapshot()))

    def shutdown(self) -> None:
        self._cancel_pending()
        if self._guard is not None:
            self._guard.cancel()
            self._guard = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_delay_elapsed(self) -> None:
        self._pending = None
        if self._retrying:
            return
        problem = problem_status(self._get_snapshot())
        if problem is None:
            _LOGGER.debug("Connectivity recovered before the banner delay elapsed")
            return
        self._show(problem)

    def _release_guard(self) -> None:
        self._guard = None

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _show(self, status: ConnectionStatus | None) -> None:
        content = None
        if status is not None:
            content = BannerContent(status=status, message=BANNER_MESSAGES[status.value])
        if content == self._content:
            return
        self._content = content
        if self._on_change is not None:
            self._on_change()
