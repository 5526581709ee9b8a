"""
Users Router — dashboard accounts.

Passwords are hashed on the way in and never leave the API.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from core.security import hash_password
from db.models import User
from db.storage import Storage

router = APIRouter(prefix="/api/v1/users", tags=["users"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)


class UserUpdate(PatchModel):
    orm_model: ClassVar[type] = User

    password: str | None = Field(None, min_length=6)
    name: str | None = None
    role: str | None = None


class UserResponse(BaseModel):
    id: str
    username: str
    name: str
    role: str
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[UserResponse])
async def list_users(storage: Storage = Depends(get_storage)):
    return await storage.users.list(order_by="username")


@router.get("/by-username/{username}", response_model=UserResponse)
async def get_user_by_username(username: str, storage: Storage = Depends(get_storage)):
    user = await storage.users.get_by_username(username)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: UUID, storage: Storage = Depends(get_storage)):
    user = await storage.users.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/", response_model=UserResponse, status_code=201)
async def create_user(user: UserCreate, storage: Storage = Depends(get_storage)):
    """Create a user. A taken username is rejected with 409."""
    data = user.model_dump()
    data["password"] = hash_password(data["password"])
    return await storage.users.insert(data)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(user_id: UUID, update: UserUpdate, storage: Storage = Depends(get_storage)):
    patch = update.model_dump(exclude_unset=True)
    if patch.get("password"):
        patch["password"] = hash_password(patch["password"])
    else:
        patch.pop("password", None)
    user = await storage.users.update(user_id, patch)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.users.delete(user_id):
        raise HTTPException(status_code=404, detail="User not found")
