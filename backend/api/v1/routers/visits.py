"""
Visits Router — field visit log.
"""

from datetime import datetime
from typing import ClassVar, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from db.models import Visit
from db.storage import Storage

router = APIRouter(prefix="/api/v1/visits", tags=["visits"])

VisitType = Literal["routine", "support", "installation", "maintenance"]


# ─── Schemas ────────────────────────────────────────────────────────────────


class VisitCreate(BaseModel):
    customer_id: UUID | None = None
    employee_id: UUID | None = None
    visit_date: datetime
    notes: str | None = None
    visit_type: VisitType = "routine"
    duration: int | None = Field(None, ge=0, description="Minutes")
    result: str | None = None


class VisitUpdate(PatchModel):
    orm_model: ClassVar[type] = Visit

    visit_date: datetime | None = None
    notes: str | None = None
    visit_type: VisitType | None = None
    duration: int | None = Field(None, ge=0)
    result: str | None = None


class VisitResponse(BaseModel):
    id: str
    customer_id: str | None
    employee_id: str | None
    visit_date: datetime
    notes: str | None
    visit_type: str
    duration: int | None
    result: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[VisitResponse])
async def list_visits(
    customer_id: UUID | None = None,
    employee_id: UUID | None = None,
    storage: Storage = Depends(get_storage),
):
    filters = {
        "customer_id": str(customer_id) if customer_id else None,
        "employee_id": str(employee_id) if employee_id else None,
    }
    return await storage.visits.list(filters, order_by="visit_date", descending=True)


@router.get("/{visit_id}", response_model=VisitResponse)
async def get_visit(visit_id: UUID, storage: Storage = Depends(get_storage)):
    visit = await storage.visits.get(visit_id)
    if not visit:
        raise HTTPException(status_code=404, detail="Visit not found")
    return visit


@router.post("/", response_model=VisitResponse, status_code=201)
async def create_visit(visit: VisitCreate, storage: Storage = Depends(get_storage)):
    return await storage.visits.insert(visit.model_dump())


@router.patch("/{visit_id}", response_model=VisitResponse)
async def update_visit(visit_id: UUID, update: VisitUpdate, storage: Storage = Depends(get_storage)):
    visit = await storage.visits.update(visit_id, update.model_dump(exclude_unset=True))
    if not visit:
        raise HTTPException(status_code=404, detail="Visit not found")
    return visit


@router.delete("/{visit_id}", status_code=204)
async def delete_visit(visit_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.visits.delete(visit_id):
        raise HTTPException(status_code=404, detail="Visit not found")
