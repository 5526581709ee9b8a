"""
Device status simulator for demo and desktop installs without live terminals.

Every interval, each terminal has a small chance of changing status:
  active      -> stays active 80%, otherwise offline or maintenance (50/50)
  offline     -> back to active 60%
  maintenance -> back to active 70%
An active -> offline flip also raises a high-priority error alert.
All writes go through MonitoringService, so they are broadcast like any
other watched mutation.
"""

import asyncio
import random

import structlog

from db.models import PosDevice
from db.types import utcnow
from monitoring.service import MonitoringService

logger = structlog.get_logger()

CHANGE_PROBABILITY = 0.1


class DeviceStatusSimulator:
    def __init__(
        self,
        service: MonitoringService,
        interval: float = 5.0,
        change_probability: float = CHANGE_PROBABILITY,
        rng: random.Random | None = None,
    ):
        self.service = service
        self.interval = interval
        self.change_probability = change_probability
        self.rng = rng or random.Random()
        self._task: asyncio.Task | None = None

    def next_status(self, current: str) -> str:
        roll = self.rng.random()
        if current == "active":
            if roll < 0.8:
                return "active"
            return "offline" if self.rng.random() < 0.5 else "maintenance"
        if current == "offline":
            return "active" if roll < 0.6 else "offline"
        if current == "maintenance":
            return "active" if roll < 0.7 else "maintenance"
        return current

    async def tick(self) -> int:
        """One simulation pass. Returns how many devices changed status."""
        storage = self.service.storage
        devices = await storage.pos_devices.list()
        logger.debug("simulator.tick", devices=len(devices), sessions=len(self.service.channel.registry))

        changed = 0
        for device in devices:
            if self.rng.random() >= self.change_probability:
                continue
            new_status = self.next_status(device.status)
            if new_status == device.status:
                continue

            last_connection = device.last_connection if new_status == "offline" else utcnow()
            updated = await self.service.update_device(
                device.id, {"status": new_status, "last_connection": last_connection}
            )
            if updated is None:
                continue
            changed += 1

            if device.status == "active" and new_status == "offline":
                await self._raise_offline_alert(device)
        return changed

    async def _raise_offline_alert(self, device: PosDevice) -> None:
        customer = await self.service.storage.customers.get(device.customer_id)
        if customer is not None:
            message = f"POS terminal of {customer.shop_name} ({device.device_code}) dropped off the network"
        else:
            message = f"POS terminal {device.device_code} dropped off the network"
        await self.service.create_alert(
            {
                "title": f"Device {device.device_code} went offline",
                "message": message,
                "type": "error",
                "priority": "high",
                "customer_id": device.customer_id,
            }
        )

    async def run(self) -> None:
        logger.info("simulator.started", interval=self.interval)
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("simulator.tick_failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("simulator.stopped")
