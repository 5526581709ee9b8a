"""
POS Monitor API Dependencies

The storage handle, broadcast channel and monitoring service are created once
in the application lifespan and handed to routes from app.state.
"""

from fastapi import Request

from core.config import StorageConfig
from db.storage import Storage
from monitoring.broadcast import BroadcastChannel
from monitoring.service import MonitoringService


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_storage_config(request: Request) -> StorageConfig:
    return request.app.state.storage_config


def get_broadcast(request: Request) -> BroadcastChannel:
    return request.app.state.broadcast


def get_monitoring(request: Request) -> MonitoringService:
    return request.app.state.monitoring
