"""
Broadcast sessions and the registry that owns them.

A session moves Connecting -> Open -> Closed and never back. The registry's
only mutators are add (on connect) and remove (on close or transport error).
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class Transport(Protocol):
    async def accept(self) -> None: ...

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class SessionState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class Session:
    """One connected dashboard client."""

    def __init__(self, transport: Transport, session_id: str | None = None):
        self.id = session_id or str(uuid.uuid4())
        self.transport = transport
        self.state = SessionState.CONNECTING
        self.connected_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    async def open(self) -> None:
        await self.transport.accept()
        self.state = SessionState.OPEN
        self.connected_at = datetime.now(timezone.utc)

    async def send(self, payload: dict[str, Any]) -> None:
        await self.transport.send_json(payload)

    def mark_closed(self) -> None:
        self.state = SessionState.CLOSED

    async def close(self, code: int = 1000) -> None:
        """Close the transport if it is still up; errors only get logged."""
        self.mark_closed()
        try:
            await self.transport.close(code=code)
        except Exception as exc:
            logger.debug("ws.close_failed", session_id=self.id, error=repr(exc))


class SessionRegistry:
    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def add(self, session: Session) -> None:
        self._sessions[session.id] = session

    def remove(self, session: Session) -> bool:
        return self._sessions.pop(session.id, None) is not None

    def open_sessions(self) -> list[Session]:
        """Snapshot of sessions that are Open right now."""
        return [s for s in self._sessions.values() if s.is_open]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session: Session) -> bool:
        return session.id in self._sessions
