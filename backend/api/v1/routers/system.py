"""
System Router — storage backend and schema introspection.
"""

from fastapi import APIRouter, Depends

from api.deps import get_broadcast, get_storage_config
from core.config import StorageConfig
from db.session import Base
from db.types import describe_schema
from monitoring.broadcast import BroadcastChannel

router = APIRouter(prefix="/api/v1/system", tags=["system"])


@router.get("/schema")
async def get_schema():
    """Logical schema with the physical type each column gets on PostgreSQL and SQLite."""
    return describe_schema(Base.metadata)


@router.get("/status")
async def get_status(
    config: StorageConfig = Depends(get_storage_config),
    channel: BroadcastChannel = Depends(get_broadcast),
):
    return {
        "backend": config.backend,
        "database_path": str(config.database_path) if config.database_path else None,
        "sessions": len(channel.registry),
        "open_sessions": len(channel.registry.open_sessions()),
    }
