"""Session continuity between requests.

The engine owns session storage; the proxy only forwards a resume id in
through the ``X-Claude-Session-ID`` request header and reports the engine's
id back in the response header of the same name.
"""

from __future__ import annotations

import logging
import time

from .engine import AgentEvent

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Claude-Session-ID"


class SessionTracker:
    """Tracks the session id for one request.

    The first id reported by the engine wins; later ids within the same
    request are ignored.
    """

    def __init__(
        self,
        resume_id: str | None = None,
        started_ms: int | None = None,
        request_id: str = "-",
    ):
        self.resume_id = resume_id or None
        self.started_ms = started_ms if started_ms is not None else int(time.time() * 1000)
        self.session_id: str | None = None
        self._request_id = request_id
        if self.resume_id:
            logger.info("[%s] session_resume_requested session_id=%s", request_id, self.resume_id)

    @property
    def captured(self) -> bool:
        return self.session_id is not None

    def observe(self, event: AgentEvent) -> bool:
        """Capture the event's session id if none is known yet.

        Returns True when this event supplied the id.
        """
        if self.session_id is not None or not event.session_id:
            return False
        self.session_id = event.session_id
        if self.resume_id:
            logger.info(
                "[%s] session_resumed session_id=%s requested=%s",
                self._request_id,
                self.session_id,
                self.resume_id,
            )
        else:
            logger.info("[%s] session_new session_id=%s", self._request_id, self.session_id)
        return True

    def resolve(self) -> str:
        """Engine id, else the inbound resume id, else a placeholder."""
        return self.session_id or self.resume_id or f"session_{self.started_ms}"

    def headers(self) -> dict[str, str]:
        return {SESSION_HEADER: self.resolve()}
