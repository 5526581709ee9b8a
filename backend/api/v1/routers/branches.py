"""
Branches Router — CRUD for banking branches.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from db.models import Branch
from db.storage import Storage

router = APIRouter(prefix="/api/v1/branches", tags=["branches"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    manager: str | None = None
    phone: str | None = None
    address: str | None = None
    latitude: Decimal | None = Field(None, ge=-90, le=90, max_digits=10, decimal_places=8)
    longitude: Decimal | None = Field(None, ge=-180, le=180, max_digits=11, decimal_places=8)
    coverage_radius: int = Field(5, ge=0)
    monthly_target: int = Field(0, ge=0)
    performance: int = 0


class BranchUpdate(PatchModel):
    orm_model: ClassVar[type] = Branch

    name: str | None = None
    code: str | None = None
    type: str | None = None
    manager: str | None = None
    phone: str | None = None
    address: str | None = None
    latitude: Decimal | None = Field(None, ge=-90, le=90, max_digits=10, decimal_places=8)
    longitude: Decimal | None = Field(None, ge=-180, le=180, max_digits=11, decimal_places=8)
    coverage_radius: int | None = Field(None, ge=0)
    monthly_target: int | None = Field(None, ge=0)
    performance: int | None = None


class BranchResponse(BaseModel):
    id: str
    name: str
    code: str
    type: str
    manager: str | None
    phone: str | None
    address: str | None
    latitude: Decimal | None
    longitude: Decimal | None
    coverage_radius: int | None
    monthly_target: int | None
    performance: int | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[BranchResponse])
async def list_branches(storage: Storage = Depends(get_storage)):
    return await storage.branches.list(order_by="name")


@router.get("/{branch_id}", response_model=BranchResponse)
async def get_branch(branch_id: UUID, storage: Storage = Depends(get_storage)):
    branch = await storage.branches.get(branch_id)
    if not branch:
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch


@router.post("/", response_model=BranchResponse, status_code=201)
async def create_branch(branch: BranchCreate, storage: Storage = Depends(get_storage)):
    return await storage.branches.insert(branch.model_dump())


@router.patch("/{branch_id}", response_model=BranchResponse)
async def update_branch(branch_id: UUID, update: BranchUpdate, storage: Storage = Depends(get_storage)):
    branch = await storage.branches.update(branch_id, update.model_dump(exclude_unset=True))
    if not branch:
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch


@router.delete("/{branch_id}", status_code=204)
async def delete_branch(branch_id: UUID, storage: Storage = Depends(get_storage)):
    """Delete a branch. Still-referenced branches are rejected with 409."""
    if not await storage.branches.delete(branch_id):
        raise HTTPException(status_code=404, detail="Branch not found")
