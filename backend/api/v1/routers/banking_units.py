"""
Banking Units Router — branches, counters and kiosks below branch level.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from db.models import BankingUnit
from db.storage import Storage

router = APIRouter(prefix="/api/v1/banking-units", tags=["banking-units"])

UnitType = Literal["branch", "counter", "shahrbnet_kiosk"]


# ─── Schemas ────────────────────────────────────────────────────────────────


class BankingUnitCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    unit_type: UnitType
    manager_name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=20)
    address: str | None = None
    latitude: Decimal | None = Field(None, ge=-90, le=90, max_digits=10, decimal_places=8)
    longitude: Decimal | None = Field(None, ge=-180, le=180, max_digits=11, decimal_places=8)
    is_active: bool = True


class BankingUnitUpdate(PatchModel):
    orm_model: ClassVar[type] = BankingUnit

    code: str | None = Field(None, max_length=50)
    name: str | None = Field(None, max_length=255)
    unit_type: UnitType | None = None
    manager_name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=20)
    address: str | None = None
    latitude: Decimal | None = Field(None, ge=-90, le=90, max_digits=10, decimal_places=8)
    longitude: Decimal | None = Field(None, ge=-180, le=180, max_digits=11, decimal_places=8)
    is_active: bool | None = None


class BankingUnitResponse(BaseModel):
    id: str
    code: str
    name: str
    unit_type: str
    manager_name: str | None
    phone: str | None
    address: str | None
    latitude: Decimal | None
    longitude: Decimal | None
    is_active: bool | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[BankingUnitResponse])
async def list_banking_units(
    unit_type: UnitType | None = None,
    is_active: bool | None = None,
    storage: Storage = Depends(get_storage),
):
    return await storage.banking_units.list({"unit_type": unit_type, "is_active": is_active}, order_by="code")


@router.get("/{unit_id}", response_model=BankingUnitResponse)
async def get_banking_unit(unit_id: UUID, storage: Storage = Depends(get_storage)):
    unit = await storage.banking_units.get(unit_id)
    if not unit:
        raise HTTPException(status_code=404, detail="Banking unit not found")
    return unit


@router.post("/", response_model=BankingUnitResponse, status_code=201)
async def create_banking_unit(unit: BankingUnitCreate, storage: Storage = Depends(get_storage)):
    return await storage.banking_units.insert(unit.model_dump())


@router.patch("/{unit_id}", response_model=BankingUnitResponse)
async def update_banking_unit(unit_id: UUID, update: BankingUnitUpdate, storage: Storage = Depends(get_storage)):
    unit = await storage.banking_units.update(unit_id, update.model_dump(exclude_unset=True))
    if not unit:
        raise HTTPException(status_code=404, detail="Banking unit not found")
    return unit


@router.delete("/{unit_id}", status_code=204)
async def delete_banking_unit(unit_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.banking_units.delete(unit_id):
        raise HTTPException(status_code=404, detail="Banking unit not found")
