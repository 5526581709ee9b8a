"""
Employees Router — staff records, filterable by branch.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from db.models import Employee
from db.storage import Storage

router = APIRouter(prefix="/api/v1/employees", tags=["employees"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class EmployeeCreate(BaseModel):
    employee_code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    position: str = Field(..., min_length=1)
    phone: str | None = None
    email: str | None = None
    branch_id: UUID | None = None
    salary: int = Field(0, ge=0)
    hire_date: datetime | None = None
    is_active: bool = True


class EmployeeUpdate(PatchModel):
    orm_model: ClassVar[type] = Employee

    employee_code: str | None = None
    name: str | None = None
    position: str | None = None
    phone: str | None = None
    email: str | None = None
    branch_id: UUID | None = None
    salary: int | None = Field(None, ge=0)
    hire_date: datetime | None = None
    is_active: bool | None = None


class EmployeeResponse(BaseModel):
    id: str
    employee_code: str
    name: str
    position: str
    phone: str | None
    email: str | None
    branch_id: str | None
    salary: int | None
    hire_date: datetime | None
    is_active: bool | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[EmployeeResponse])
async def list_employees(
    branch_id: UUID | None = None,
    is_active: bool | None = None,
    storage: Storage = Depends(get_storage),
):
    if branch_id is not None and is_active is None:
        return await storage.employees.by_branch(str(branch_id))
    return await storage.employees.list(
        {"branch_id": str(branch_id) if branch_id else None, "is_active": is_active},
        order_by="name",
    )


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: UUID, storage: Storage = Depends(get_storage)):
    employee = await storage.employees.get(employee_id)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


@router.post("/", response_model=EmployeeResponse, status_code=201)
async def create_employee(employee: EmployeeCreate, storage: Storage = Depends(get_storage)):
    data = employee.model_dump(exclude_none=True)
    return await storage.employees.insert(data)


@router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(employee_id: UUID, update: EmployeeUpdate, storage: Storage = Depends(get_storage)):
    employee = await storage.employees.update(employee_id, update.model_dump(exclude_unset=True))
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


@router.delete("/{employee_id}", status_code=204)
async def delete_employee(employee_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.employees.delete(employee_id):
        raise HTTPException(status_code=404, detail="Employee not found")
