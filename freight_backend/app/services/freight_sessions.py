"""
Freight session registry.

Holds the open reconciliation sessions of the running process, keyed by an
opaque session id handed to the client. Sessions nobody has touched for
`ttl_seconds` are closed and dropped on the next register or get.
"""

import logging
import time
import uuid
from typing import Callable, Dict, Tuple

from freight_backend.app.core.exceptions import ResourceNotFoundError
from freight_backend.app.domain.deliveries.reconciliation import FreightReconciliation

logger = logging.getLogger("freight.sessions")


class FreightSessionRegistry:

    def __init__(self, ttl_seconds: float = 1800, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        # session id -> (session, last touched)
        self._sessions: Dict[str, Tuple[FreightReconciliation, float]] = {}

    def register(self, session: FreightReconciliation) -> str:
        self._sweep()
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = (session, self.clock())
        logger.debug("Freight session opened", extra={"session_id": session_id, "record_id": session.record_id})
        return session_id

    def get(self, session_id: str) -> FreightReconciliation:
        """
        Look up an open session and mark it as recently used.

        Raises:
            ResourceNotFoundError: Unknown, expired or already discarded session
        """
        self._sweep()
        entry = self._sessions.get(session_id)
        if entry is None:
            raise ResourceNotFoundError("Freight session", session_id)
        session = entry[0]
        self._sessions[session_id] = (session, self.clock())
        return session

    def discard(self, session_id: str) -> None:
        """Close and forget a session. Discarding twice is a no-op."""
        entry = self._sessions.pop(session_id, None)
        if entry is not None:
            entry[0].close()
            logger.debug("Freight session discarded", extra={"session_id": session_id})

    def _sweep(self) -> None:
        now = self.clock()
        expired = [
            session_id
            for session_id, (_, touched) in self._sessions.items()
            if now - touched > self.ttl_seconds
        ]
        for session_id in expired:
            session, _ = self._sessions.pop(session_id)
            session.close()
        if expired:
            logger.info("Expired idle freight sessions", extra={"count": len(expired)})

    def __len__(self) -> int:
        return len(self._sessions)
