"""
Customers Router — merchant locations hosting POS terminals.

Listing supports branch/status/business-type filters plus a free-text
search over shop name, owner name and phone. Opening a customer record
or logging a visit against it is audited under /{id}/access-logs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from api.deps import get_storage
from api.v1.schemas import PatchModel
from db.models import Customer
from db.storage import Storage

router = APIRouter(prefix="/api/v1/customers", tags=["customers"])

CustomerStatus = Literal["active", "normal", "marketing", "collected", "loss"]


# ─── Schemas ────────────────────────────────────────────────────────────────


class CustomerCreate(BaseModel):
    national_id: str | None = None
    shop_name: str = Field(..., min_length=1)
    owner_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    business_type: str = Field(..., min_length=1)
    address: str | None = None
    latitude: Decimal | None = Field(None, ge=-90, le=90, max_digits=10, decimal_places=8)
    longitude: Decimal | None = Field(None, ge=-180, le=180, max_digits=11, decimal_places=8)
    monthly_profit: int = 0
    status: CustomerStatus = "active"
    branch_id: UUID | None = None
    banking_unit_id: UUID | None = None
    support_employee_id: UUID | None = None
    install_date: datetime | None = None


class CustomerUpdate(PatchModel):
    orm_model: ClassVar[type] = Customer

    national_id: str | None = None
    shop_name: str | None = None
    owner_name: str | None = None
    phone: str | None = None
    business_type: str | None = None
    address: str | None = None
    latitude: Decimal | None = Field(None, ge=-90, le=90, max_digits=10, decimal_places=8)
    longitude: Decimal | None = Field(None, ge=-180, le=180, max_digits=11, decimal_places=8)
    monthly_profit: int | None = None
    status: CustomerStatus | None = None
    branch_id: UUID | None = None
    banking_unit_id: UUID | None = None
    support_employee_id: UUID | None = None
    install_date: datetime | None = None


class CustomerResponse(BaseModel):
    id: str
    national_id: str | None
    shop_name: str
    owner_name: str
    phone: str
    business_type: str
    address: str | None
    latitude: Decimal | None
    longitude: Decimal | None
    monthly_profit: int | None
    status: str
    branch_id: str | None
    banking_unit_id: str | None
    support_employee_id: str | None
    install_date: datetime | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class AccessLogCreate(BaseModel):
    access_type: Literal["view_details", "add_visit"]
    user_agent: str | None = None
    customer_summary: dict[str, Any] | None = None


class AccessLogResponse(BaseModel):
    id: str
    customer_id: str
    access_type: str
    user_agent: str | None
    ip_address: str | None
    customer_summary: Any = None
    access_time: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[CustomerResponse])
async def list_customers(
    branch_id: UUID | None = None,
    status: CustomerStatus | None = None,
    business_type: str | None = None,
    search: str | None = None,
    storage: Storage = Depends(get_storage),
):
    """List customers. All given filters must match."""
    filters = {
        "branch_id": str(branch_id) if branch_id else None,
        "status": status,
        "business_type": business_type,
    }
    if search:
        return await storage.customers.search(search, filters)
    return await storage.customers.list(filters, order_by="shop_name")


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: UUID, storage: Storage = Depends(get_storage)):
    customer = await storage.customers.get(customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.post("/", response_model=CustomerResponse, status_code=201)
async def create_customer(customer: CustomerCreate, storage: Storage = Depends(get_storage)):
    """Create a customer. Unknown branch / unit / employee references are rejected with 409."""
    return await storage.customers.insert(customer.model_dump())


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(customer_id: UUID, update: CustomerUpdate, storage: Storage = Depends(get_storage)):
    customer = await storage.customers.update(customer_id, update.model_dump(exclude_unset=True))
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.delete("/{customer_id}", status_code=204)
async def delete_customer(customer_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.customers.delete(customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")


# ─── Access audit ───────────────────────────────────────────────────────────


@router.get("/{customer_id}/access-logs", response_model=list[AccessLogResponse])
async def list_access_logs(customer_id: UUID, storage: Storage = Depends(get_storage)):
    return await storage.access_logs.list({"customer_id": str(customer_id)})


@router.post("/{customer_id}/access-logs", response_model=AccessLogResponse, status_code=201)
async def create_access_log(
    customer_id: UUID,
    entry: AccessLogCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
):
    """Record that a customer record was opened. The client address is taken from the connection."""
    if not await storage.customers.get(customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    data = entry.model_dump()
    data["customer_id"] = str(customer_id)
    data["ip_address"] = request.client.host if request.client else None
    if not data["user_agent"]:
        data["user_agent"] = request.headers.get("user-agent")
    return await storage.access_logs.insert(data)
