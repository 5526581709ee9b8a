"""
Monitoring event envelopes pushed over /ws/monitoring.

Wire format (camelCase keys):
    {"type": "initial_status", "timestamp": "...", "message": "..."}
    {"type": "device_status_change", "timestamp": "...", "deviceId": "...",
     "customerId": "...", "deviceCode": "...", "oldStatus": "...", "newStatus": "..."}
    {"type": "new_alert", "timestamp": "...", "alert": {...full alert record, camelCase...}}
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

INITIAL_STATUS = "initial_status"
DEVICE_STATUS_CHANGE = "device_status_change"
NEW_ALERT = "new_alert"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MonitoringEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str
    timestamp: datetime = Field(default_factory=_now)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class InitialStatus(MonitoringEvent):
    type: Literal["initial_status"] = INITIAL_STATUS
    message: str = "Connected to POS monitoring system"


class DeviceStatusChange(MonitoringEvent):
    type: Literal["device_status_change"] = DEVICE_STATUS_CHANGE
    device_id: str
    customer_id: str | None = None
    device_code: str
    old_status: str
    new_status: str


class NewAlert(MonitoringEvent):
    type: Literal["new_alert"] = NEW_ALERT
    alert: dict[str, Any]

    @classmethod
    def from_record(cls, alert) -> "NewAlert":
        return cls(alert={to_camel(key): value for key, value in alert.to_dict().items()})


EVENT_TYPES: dict[str, type[MonitoringEvent]] = {
    INITIAL_STATUS: InitialStatus,
    DEVICE_STATUS_CHANGE: DeviceStatusChange,
    NEW_ALERT: NewAlert,
}


def parse_event(data: dict[str, Any]) -> MonitoringEvent | None:
    """Decode a wire message; None for unknown types or malformed payloads."""
    event_cls = EVENT_TYPES.get(data.get("type", ""))
    if event_cls is None:
        return None
    try:
        return event_cls.model_validate(data)
    except ValidationError:
        return None
