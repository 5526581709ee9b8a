"""
POS Monthly Stats Router — per customer / branch monthly aggregates.
"""

from datetime import datetime
from typing import ClassVar, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from db.models import PosMonthlyStats
from db.storage import Storage

router = APIRouter(prefix="/api/v1/pos-monthly-stats", tags=["pos-monthly-stats"])

StatsStatus = Literal["active", "normal", "marketing", "collected", "loss"]


# ─── Schemas ────────────────────────────────────────────────────────────────


class MonthlyStatsCreate(BaseModel):
    customer_id: UUID | None = None
    branch_id: UUID | None = None
    year: int = Field(..., ge=1900, le=3000)
    month: int = Field(..., ge=1, le=12)
    total_transactions: int = Field(0, ge=0)
    total_amount: int = 0
    revenue: int = 0
    profit: int = 0
    status: StatsStatus = "active"
    notes: str | None = None


class MonthlyStatsUpdate(PatchModel):
    orm_model: ClassVar[type] = PosMonthlyStats

    total_transactions: int | None = Field(None, ge=0)
    total_amount: int | None = None
    revenue: int | None = None
    profit: int | None = None
    status: StatsStatus | None = None
    notes: str | None = None


class MonthlyStatsResponse(BaseModel):
    id: str
    customer_id: str | None
    branch_id: str | None
    year: int
    month: int
    total_transactions: int | None
    total_amount: int | None
    revenue: int | None
    profit: int | None
    status: str
    notes: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[MonthlyStatsResponse])
async def list_monthly_stats(
    customer_id: UUID | None = None,
    branch_id: UUID | None = None,
    year: int | None = None,
    month: int | None = Query(None, ge=1, le=12),
    storage: Storage = Depends(get_storage),
):
    filters = {
        "customer_id": str(customer_id) if customer_id else None,
        "branch_id": str(branch_id) if branch_id else None,
        "year": year,
        "month": month,
    }
    return await storage.monthly_stats.list(filters, order_by="year", descending=True)


@router.get("/{stats_id}", response_model=MonthlyStatsResponse)
async def get_monthly_stats(stats_id: UUID, storage: Storage = Depends(get_storage)):
    stats = await storage.monthly_stats.get(stats_id)
    if not stats:
        raise HTTPException(status_code=404, detail="Monthly stats not found")
    return stats


@router.post("/", response_model=MonthlyStatsResponse, status_code=201)
async def create_monthly_stats(stats: MonthlyStatsCreate, storage: Storage = Depends(get_storage)):
    return await storage.monthly_stats.insert(stats.model_dump())


@router.patch("/{stats_id}", response_model=MonthlyStatsResponse)
async def update_monthly_stats(stats_id: UUID, update: MonthlyStatsUpdate, storage: Storage = Depends(get_storage)):
    stats = await storage.monthly_stats.update(stats_id, update.model_dump(exclude_unset=True))
    if not stats:
        raise HTTPException(status_code=404, detail="Monthly stats not found")
    return stats


@router.delete("/{stats_id}", status_code=204)
async def delete_monthly_stats(stats_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.monthly_stats.delete(stats_id):
        raise HTTPException(status_code=404, detail="Monthly stats not found")
