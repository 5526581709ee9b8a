"""
Watched mutations.

POS device status changes and alert inserts go through this service so that
the matching broadcast is emitted only after the write has been committed.
"""

import asyncio
from collections import defaultdict
from typing import Any

import structlog

from db.models import Alert, PosDevice
from db.storage import Storage
from monitoring.broadcast import BroadcastChannel
from monitoring.events import DeviceStatusChange, NewAlert

logger = structlog.get_logger()


class MonitoringService:
    def __init__(self, storage: Storage, channel: BroadcastChannel):
        self.storage = storage
        self.channel = channel
        # One lock per device id; status updates to a device run one at a time
        self._device_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def update_device(self, device_id: str, patch: dict[str, Any]) -> PosDevice | None:
        """Patch a device; broadcast device_status_change if its status changed."""
        async with self._device_locks[str(device_id)]:
            result = await self.storage.pos_devices.update_status(device_id, patch)
            if result is None:
                return None
            old_status, device = result

            if "status" in patch and device.status != old_status:
                logger.info(
                    "device.status_changed",
                    device_id=device.id,
                    old_status=old_status,
                    new_status=device.status,
                )
                await self.channel.emit(
                    DeviceStatusChange(
                        device_id=device.id,
                        customer_id=device.customer_id,
                        device_code=device.device_code,
                        old_status=old_status,
                        new_status=device.status,
                    )
                )
        return device

    async def create_alert(self, data: dict[str, Any]) -> Alert:
        """Insert an alert and broadcast it as new_alert."""
        alert = await self.storage.alerts.insert(data)
        logger.info("alert.created", alert_id=alert.id, priority=alert.priority)
        await self.channel.emit(NewAlert.from_record(alert))
        return alert
