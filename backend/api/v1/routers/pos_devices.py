"""
POS Devices Router — terminals and their connectivity status.

Updates go through MonitoringService so that a status change is pushed to
every connected dashboard after it is committed.
"""

from datetime import datetime
from typing import ClassVar, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_monitoring, get_storage
from api.v1.schemas import PatchModel
from db.models import PosDevice
from db.storage import Storage
from monitoring.service import MonitoringService

router = APIRouter(prefix="/api/v1/pos-devices", tags=["pos-devices"])

DeviceStatus = Literal["active", "offline", "maintenance"]


# ─── Schemas ────────────────────────────────────────────────────────────────


class PosDeviceCreate(BaseModel):
    customer_id: UUID
    device_code: str = Field(..., min_length=1)
    status: DeviceStatus = "active"
    last_connection: datetime | None = None


class PosDeviceUpdate(PatchModel):
    orm_model: ClassVar[type] = PosDevice

    device_code: str | None = None
    status: DeviceStatus | None = None
    last_connection: datetime | None = None


class PosDeviceResponse(BaseModel):
    id: str
    customer_id: str
    device_code: str
    status: str
    last_connection: datetime | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[PosDeviceResponse])
async def list_pos_devices(
    customer_id: UUID | None = None,
    status: DeviceStatus | None = None,
    storage: Storage = Depends(get_storage),
):
    if customer_id is not None and status is None:
        return await storage.pos_devices.by_customer(str(customer_id))
    return await storage.pos_devices.list(
        {"customer_id": str(customer_id) if customer_id else None, "status": status},
        order_by="device_code",
    )


@router.get("/{device_id}", response_model=PosDeviceResponse)
async def get_pos_device(device_id: UUID, storage: Storage = Depends(get_storage)):
    device = await storage.pos_devices.get(device_id)
    if not device:
        raise HTTPException(status_code=404, detail="POS device not found")
    return device


@router.post("/", response_model=PosDeviceResponse, status_code=201)
async def create_pos_device(device: PosDeviceCreate, storage: Storage = Depends(get_storage)):
    """Register a terminal. The owning customer must exist."""
    return await storage.pos_devices.insert(device.model_dump(exclude_none=True))


@router.patch("/{device_id}", response_model=PosDeviceResponse)
async def update_pos_device(
    device_id: UUID,
    update: PosDeviceUpdate,
    monitoring: MonitoringService = Depends(get_monitoring),
):
    """Update a terminal; a status change is broadcast as device_status_change."""
    device = await monitoring.update_device(str(device_id), update.model_dump(exclude_unset=True))
    if not device:
        raise HTTPException(status_code=404, detail="POS device not found")
    return device


@router.delete("/{device_id}", status_code=204)
async def delete_pos_device(device_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.pos_devices.delete(device_id):
        raise HTTPException(status_code=404, detail="POS device not found")
