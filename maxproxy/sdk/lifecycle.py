"""Lifecycle timers and cancellation for a single engine run.

Every run owns one CancellationToken and one LifecycleTimers pair:

- the total timer starts when the engine call is issued and never resets;
- the inactivity timer restarts on every unit of activity.

Whichever fires first cancels the token (only the first cancel counts) and
clears both timers. The token's callbacks are how the run stops the engine
and wakes its consumer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)

TOTAL = "total"
INACTIVITY = "inactivity"


class EngineTimeout(Exception):
    """The run was cancelled because a lifecycle timer fired."""

    def __init__(self, timer: str, timeout_ms: int):
        self.timer = timer
        self.timeout_ms = timeout_ms
        if timer == TOTAL:
            message = f"Stream timeout exceeded ({timeout_ms}ms)"
        else:
            message = f"Stream inactivity timeout ({timeout_ms}ms without engine activity)"
        super().__init__(message)


class CancellationToken:
    """Idempotent, callback-based cancellation signal."""

    def __init__(self) -> None:
        self._reason: BaseException | None = None
        self._callbacks: list[Callable[[BaseException], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> BaseException | None:
        return self._reason

    def add_callback(self, callback: Callable[[BaseException], None]) -> None:
        """Register ``callback``; runs immediately if already cancelled."""
        if self._reason is not None:
            callback(self._reason)
        else:
            self._callbacks.append(callback)

    def cancel(self, reason: BaseException) -> bool:
        """Cancel with ``reason``. Returns False if already cancelled."""
        if self._reason is not None:
            return False
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(reason)
        return True


class LifecycleTimers:
    """Total + inactivity deadlines sharing one CancellationToken."""

    def __init__(
        self,
        token: CancellationToken,
        timeout_ms: int,
        inactivity_ms: int,
        request_id: str = "-",
    ):
        self._token = token
        self._timeout_ms = timeout_ms
        self._inactivity_ms = inactivity_ms
        self._request_id = request_id
        self._total: asyncio.TimerHandle | None = None
        self._inactivity: asyncio.TimerHandle | None = None
        self._cleared = False
        self.fired: str | None = None

    @property
    def active(self) -> bool:
        """True while at least one timer is still pending."""
        return self._total is not None or self._inactivity is not None

    def start(self) -> None:
        """Arm both timers. Must be called from the event loop."""
        loop = asyncio.get_running_loop()
        self._total = loop.call_later(self._timeout_ms / 1000, self._fire, TOTAL)
        self.reset_inactivity()

    def reset_inactivity(self) -> None:
        """Restart the inactivity deadline. No-op once cleared."""
        if self._cleared:
            return
        if self._inactivity is not None:
            self._inactivity.cancel()
        loop = asyncio.get_running_loop()
        self._inactivity = loop.call_later(self._inactivity_ms / 1000, self._fire, INACTIVITY)

    def clear(self) -> None:
        """Cancel both pending timers. Safe to call repeatedly."""
        self._cleared = True
        if self._total is not None:
            self._total.cancel()
            self._total = None
        if self._inactivity is not None:
            self._inactivity.cancel()
            self._inactivity = None

    def _fire(self, timer: str) -> None:
        timeout_ms = self._timeout_ms if timer == TOTAL else self._inactivity_ms
        self.fired = timer
        self.clear()
        logger.warning(
            "[%s] stream_%s_timeout timeout_ms=%d",
            self._request_id,
            timer,
            timeout_ms,
        )
        self._token.cancel(EngineTimeout(timer, timeout_ms))
