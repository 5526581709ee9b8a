"""
Realtime broadcast channel.

Best-effort, at-most-once delivery to every session that is Open when an
event is emitted. There is no message log and no replay: a session that
misses an event refetches current state after it reconnects.
"""

import asyncio

import structlog

from monitoring.events import InitialStatus, MonitoringEvent
from monitoring.registry import Session, SessionRegistry

logger = structlog.get_logger()


class BroadcastChannel:
    def __init__(self, registry: SessionRegistry, send_timeout: float = 2.0):
        self.registry = registry
        self.send_timeout = send_timeout
        self._closing: set[asyncio.Task] = set()

    async def emit(self, event: MonitoringEvent) -> int:
        """
        Push one event to all Open sessions concurrently.

        A send that fails or exceeds send_timeout drops only that session.
        Returns the number of sessions the event was delivered to.
        """
        targets = self.registry.open_sessions()
        if not targets:
            logger.debug("broadcast.no_sessions", type=event.type)
            return 0

        payload = event.to_wire()
        results = await asyncio.gather(*(self._deliver(session, payload) for session in targets))
        delivered = sum(results)
        logger.info("broadcast.emitted", type=event.type, sessions=len(targets), delivered=delivered)
        return delivered

    async def welcome(self, session: Session) -> bool:
        """Send initial_status to a session that just joined."""
        return await self._deliver(session, InitialStatus().to_wire())

    async def _deliver(self, session: Session, payload: dict) -> bool:
        try:
            await asyncio.wait_for(session.send(payload), timeout=self.send_timeout)
            return True
        except Exception as exc:
            logger.warning("broadcast.send_failed", session_id=session.id, error=repr(exc))
            self._drop(session)
            return False

    def _drop(self, session: Session) -> None:
        self.registry.remove(session)
        session.mark_closed()
        # Close in the background so a stuck transport cannot hold up emit()
        task = asyncio.create_task(session.close(code=1011))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)
