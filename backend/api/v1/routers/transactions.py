"""
Transactions Router — immutable financial events per terminal.

Transactions can be recorded and read back but never edited or removed.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.deps import get_storage
from db.storage import Storage

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class TransactionCreate(BaseModel):
    pos_device_id: UUID
    amount: int = Field(..., description="Amount in the smallest currency unit")
    transaction_date: datetime | None = None


class TransactionResponse(BaseModel):
    id: str
    pos_device_id: str
    amount: int
    transaction_date: datetime | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[TransactionResponse])
async def list_transactions(
    pos_device_id: UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    storage: Storage = Depends(get_storage),
):
    """List transactions newest first, optionally for one terminal and within [start, end]."""
    if start and end and start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    return await storage.transactions.between(start, end, str(pos_device_id) if pos_device_id else None)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: UUID, storage: Storage = Depends(get_storage)):
    transaction = await storage.transactions.get(transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@router.post("/", response_model=TransactionResponse, status_code=201)
async def create_transaction(transaction: TransactionCreate, storage: Storage = Depends(get_storage)):
    return await storage.transactions.insert(transaction.model_dump(exclude_none=True))


@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(transaction_id: UUID, storage: Storage = Depends(get_storage)):
    """Always rejected with 409: transactions are immutable."""
    await storage.transactions.delete(transaction_id)
