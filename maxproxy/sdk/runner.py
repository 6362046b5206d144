"""One engine call, decoupled from whoever consumes it.

``EngineRun`` drives the engine in its own pump task and hands events to the
consumer (the SSE translator or the JSON assembler) through a queue. This
split is what lets the proxy:

- stop the engine when a lifecycle timer fires (the pump task is cancelled
  and a cancellation marker wakes the consumer);
- keep the engine running after the client disconnects (the consumer goes
  away, the pump keeps draining so in-flight work such as file edits is not
  abandoned).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from claude_agent_sdk import ClaudeAgentOptions

from ..core import BACKGROUND_DRAINS, RuntimeConfig
from . import engine
from .engine import AgentEvent
from .errors import DiagnosticBuffer
from .lifecycle import CancellationToken, LifecycleTimers
from .session import SessionTracker

logger = logging.getLogger(__name__)

# Pump tasks stay referenced here until they finish.
_running: set[asyncio.Task[None]] = set()


@dataclass(frozen=True)
class _Failure:
    error: BaseException


@dataclass(frozen=True)
class _Cancelled:
    reason: BaseException


_END = object()


class EngineRun:
    """A single in-flight engine query with its timers and cancellation."""

    def __init__(
        self,
        prompt: str,
        options: ClaudeAgentOptions,
        config: RuntimeConfig,
        tracker: SessionTracker,
        diagnostics: DiagnosticBuffer,
        request_id: str = "-",
    ):
        self.prompt = prompt
        self.options = options
        self.config = config
        self.tracker = tracker
        self.diagnostics = diagnostics
        self.request_id = request_id
        self.token = CancellationToken()
        self.timers = LifecycleTimers(
            self.token,
            timeout_ms=config.timeout_ms,
            inactivity_ms=config.inactivity_ms,
            request_id=request_id,
        )
        self.finished = False
        self.detached = False
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._first_signal = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def start(self) -> None:
        """Issue the engine call and arm the lifecycle timers."""
        self.token.add_callback(self._on_cancel)
        self.timers.start()
        self._task = asyncio.create_task(self._pump(), name=f"engine-run-{self.request_id}")
        _running.add(self._task)
        self._task.add_done_callback(_running.discard)

    async def _pump(self) -> None:
        try:
            async for event in engine.stream_agent_events(self.prompt, self.options):
                self.tracker.observe(event)
                self.timers.reset_inactivity()
                self._first_signal.set()
                if self.detached:
                    logger.debug("[%s] drained_after_disconnect kind=%s", self.request_id, event.kind)
                    continue
                self._queue.put_nowait(event)
        except asyncio.CancelledError:
            # Cancelled by a lifecycle timer (consumer already woken through
            # the token) or by shutdown.
            raise
        except Exception as exc:
            if self.detached:
                logger.warning(
                    "[%s] engine_failed_after_disconnect error=%s", self.request_id, exc
                )
            else:
                self._queue.put_nowait(_Failure(exc))
        else:
            self._queue.put_nowait(_END)
        finally:
            self.finished = True
            self._first_signal.set()
            if self.detached:
                BACKGROUND_DRAINS.dec()
                logger.info("[%s] background_drain_complete", self.request_id)

    def _on_cancel(self, reason: BaseException) -> None:
        self.timers.clear()
        self._queue.put_nowait(_Cancelled(reason))
        self._first_signal.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_for_first_signal(self, timeout: float) -> bool:
        """Wait until the engine reported a session, produced an event, or
        stopped. Returns False if ``timeout`` elapsed first."""
        if self._first_signal.is_set():
            return True
        if timeout <= 0:
            return False
        try:
            await asyncio.wait_for(self._first_signal.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def next_event(self) -> AgentEvent | None:
        """Next engine event, or None when the engine finished normally.

        Raises the engine's failure, or the cancellation reason once the run
        was cancelled (queued events are dropped after cancellation).
        """
        if self.token.cancelled:
            raise self.token.reason  # type: ignore[misc]
        item = await self._queue.get()
        if self.token.cancelled:
            raise self.token.reason  # type: ignore[misc]
        if item is _END:
            return None
        if isinstance(item, _Failure):
            raise item.error
        if isinstance(item, _Cancelled):
            raise item.reason
        return item  # type: ignore[return-value]

    def finish(self) -> None:
        """Consumer is done; stop the timers."""
        self.timers.clear()

    def detach(self) -> None:
        """Consumer went away: stop the timers but let the engine finish."""
        if self.detached:
            return
        self.detached = True
        self.timers.clear()
        while not self._queue.empty():
            self._queue.get_nowait()
        if not self.finished:
            BACKGROUND_DRAINS.inc()
            logger.info(
                "[%s] engine_continues_in_background reason=client_disconnect", self.request_id
            )


def running_count() -> int:
    """Number of engine runs whose pump has not finished."""
    return len(_running)


async def shutdown_runs() -> None:
    """Cancel every engine run still in flight (server shutdown)."""
    tasks = list(_running)
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Cancelled %d in-flight engine runs", len(tasks))
