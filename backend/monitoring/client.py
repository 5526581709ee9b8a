"""Dashboard-side listener for /ws/monitoring that keeps a QueryCache fresh."""

import asyncio
import json
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import structlog
import websockets
from websockets.exceptions import WebSocketException

from monitoring.cache import WATCHED_COLLECTIONS, QueryCache
from monitoring.events import DEVICE_STATUS_CHANGE, NEW_ALERT

logger = structlog.get_logger()

RECONNECT_DELAY_SECONDS = 5.0


class MonitoringClient:
    """
    Connects, applies cache invalidation for every message, and reconnects
    after a fixed delay forever (no backoff, no retry cap).

    Each (re)connect marks all watched collections stale: events missed
    while disconnected are never replayed, so the next read must refetch.
    """

    def __init__(
        self,
        url: str,
        cache: QueryCache | None = None,
        *,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        on_event: Callable[[dict[str, Any]], None] | None = None,
        connect=websockets.connect,
    ):
        self.url = url
        self.cache = cache or QueryCache()
        self.reconnect_delay = reconnect_delay
        self.on_event = on_event
        self._connect = connect
        self._stop = asyncio.Event()

        self.is_connected = False
        self.connected_at: datetime | None = None
        self.last_message: dict[str, Any] | None = None
        self.device_updates = 0
        self.alert_count = 0
        self.connect_attempts = 0

    def handle_message(self, raw: str | bytes) -> dict[str, Any] | None:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("monitor.non_json_message", raw=str(raw)[:200])
            return None
        if not isinstance(message, dict):
            return None

        self.last_message = message
        if message.get("type") == DEVICE_STATUS_CHANGE:
            self.device_updates += 1
        elif message.get("type") == NEW_ALERT:
            self.alert_count += 1
            alert = message.get("alert") or {}
            if alert.get("priority") == "high":
                logger.info("monitor.high_priority_alert", title=alert.get("title"))

        self.cache.apply_event(message)
        if self.on_event is not None:
            self.on_event(message)
        return message

    def _on_open(self) -> None:
        self.is_connected = True
        self.connected_at = datetime.now(timezone.utc)
        self.cache.invalidate_many(WATCHED_COLLECTIONS)
        logger.info("monitor.connected", url=self.url)

    def _on_close(self) -> None:
        if self.is_connected:
            logger.info("monitor.disconnected", url=self.url)
        self.is_connected = False
        self.connected_at = None

    async def run(self) -> None:
        while not self._stop.is_set():
            self.connect_attempts += 1
            try:
                async with self._connect(self.url) as ws:
                    self._on_open()
                    async for raw in ws:
                        self.handle_message(raw)
                        if self._stop.is_set():
                            break
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                logger.warning("monitor.connection_error", url=self.url, error=repr(exc))
            finally:
                self._on_close()

            if self._stop.is_set():
                break
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.reconnect_delay)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._stop.set()
