"""
Territories Router — named GeoJSON regions for coverage views.

Geometry and bbox are stored as opaque JSON and returned exactly as given.
"""

from datetime import datetime
from typing import Annotated, Any, ClassVar
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AfterValidator, BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from db.models import Territory
from db.storage import Storage

router = APIRouter(prefix="/api/v1/territories", tags=["territories"])

GEOMETRY_TYPES = ("Polygon", "MultiPolygon")


def _check_geometry(value: dict[str, Any]) -> dict[str, Any]:
    if value.get("type") not in GEOMETRY_TYPES:
        raise ValueError(f"geometry type must be one of {', '.join(GEOMETRY_TYPES)}")
    return value


Geometry = Annotated[dict[str, Any], AfterValidator(_check_geometry)]


# ─── Schemas ────────────────────────────────────────────────────────────────


class TerritoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    color: str = Field("#3b82f6", pattern=r"^#[0-9a-fA-F]{6}$")
    assigned_banking_unit_id: UUID | None = None
    business_focus: str | None = None
    auto_named: bool = False
    geometry: Geometry
    bbox: list[float] = Field(..., min_length=4, max_length=4)
    is_active: bool = True


class TerritoryUpdate(PatchModel):
    orm_model: ClassVar[type] = Territory

    name: str | None = None
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    assigned_banking_unit_id: UUID | None = None
    business_focus: str | None = None
    auto_named: bool | None = None
    geometry: Geometry | None = None
    bbox: list[float] | None = Field(None, min_length=4, max_length=4)
    is_active: bool | None = None


class TerritoryResponse(BaseModel):
    id: str
    name: str
    color: str
    assigned_banking_unit_id: str | None
    business_focus: str | None
    auto_named: bool | None
    geometry: Any
    bbox: Any
    is_active: bool | None
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[TerritoryResponse])
async def list_territories(active_only: bool = False, storage: Storage = Depends(get_storage)):
    if active_only:
        return await storage.territories.active()
    return await storage.territories.list(order_by="name")


@router.get("/{territory_id}", response_model=TerritoryResponse)
async def get_territory(territory_id: UUID, storage: Storage = Depends(get_storage)):
    territory = await storage.territories.get(territory_id)
    if not territory:
        raise HTTPException(status_code=404, detail="Territory not found")
    return territory


@router.post("/", response_model=TerritoryResponse, status_code=201)
async def create_territory(territory: TerritoryCreate, storage: Storage = Depends(get_storage)):
    return await storage.territories.insert(territory.model_dump())


@router.patch("/{territory_id}", response_model=TerritoryResponse)
async def update_territory(territory_id: UUID, update: TerritoryUpdate, storage: Storage = Depends(get_storage)):
    territory = await storage.territories.update(territory_id, update.model_dump(exclude_unset=True))
    if not territory:
        raise HTTPException(status_code=404, detail="Territory not found")
    return territory


@router.delete("/{territory_id}", status_code=204)
async def delete_territory(territory_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.territories.delete(territory_id):
        raise HTTPException(status_code=404, detail="Territory not found")
