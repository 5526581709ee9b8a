"""
Alerts Router — notifications for dashboard operators.

New alerts are created through MonitoringService and pushed to connected
dashboards as new_alert.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from api.deps import get_monitoring, get_storage
from db.storage import Storage
from monitoring.service import MonitoringService

router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])

AlertType = Literal["error", "warning", "info"]
AlertPriority = Literal["high", "medium", "low"]


# ─── Schemas ────────────────────────────────────────────────────────────────


class AlertCreate(BaseModel):
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: AlertType
    priority: AlertPriority = "medium"
    customer_id: UUID | None = None


class AlertResponse(BaseModel):
    id: str
    title: str
    message: str
    type: str
    priority: str
    is_read: bool | None
    customer_id: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/", response_model=list[AlertResponse])
async def list_alerts(
    priority: AlertPriority | None = None,
    customer_id: UUID | None = None,
    limit: int | None = Query(None, ge=1, le=500),
    storage: Storage = Depends(get_storage),
):
    """List alerts, newest first."""
    return await storage.alerts.list(
        {"priority": priority, "customer_id": str(customer_id) if customer_id else None},
        limit=limit,
    )


@router.get("/unread", response_model=list[AlertResponse])
async def list_unread_alerts(storage: Storage = Depends(get_storage)):
    return await storage.alerts.unread()


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(alert_id: UUID, storage: Storage = Depends(get_storage)):
    alert = await storage.alerts.get(alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.post("/", response_model=AlertResponse, status_code=201)
async def create_alert(alert: AlertCreate, monitoring: MonitoringService = Depends(get_monitoring)):
    return await monitoring.create_alert(alert.model_dump())


@router.patch("/{alert_id}/read", response_model=AlertResponse)
async def mark_alert_read(alert_id: UUID, storage: Storage = Depends(get_storage)):
    """Mark an alert as read. Marking twice is a no-op."""
    alert = await storage.alerts.mark_read(str(alert_id))
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.delete("/{alert_id}", status_code=204)
async def delete_alert(alert_id: UUID, storage: Storage = Depends(get_storage)):
    if not await storage.alerts.delete(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
