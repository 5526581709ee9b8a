"""
POS Monitor Storage Adapter

One long-lived Storage handle per process, opened against whichever backend
core.config.resolve_storage_config selected. The API layer only talks to the
per-entity repositories hanging off it and never branches on the backend.

Every repository call runs in its own session and commits before returning,
so anything emitted after a call observes committed state.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy import delete as sa_delete
from sqlalchemy import or_, select, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, StatementError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from core.config import StorageConfig
from core.errors import ConfigurationError, IntegrityViolation, StorageError, StorageUnavailable
from db.models import (
    Alert,
    BankingUnit,
    Branch,
    Customer,
    CustomerAccessLog,
    Employee,
    PosDevice,
    PosMonthlyStats,
    Territory,
    Transaction,
    User,
    Visit,
)
from db.session import Base, create_session_factory, create_storage_engine

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=Base)
ResultT = TypeVar("ResultT")


def _classify_integrity_error(exc: IntegrityError) -> IntegrityViolation:
    raw = str(exc.orig).lower()
    if "foreign key" in raw:
        return IntegrityViolation("Referenced row does not exist or is still referenced", reason="foreign_key")
    if "unique" in raw or "duplicate key" in raw:
        return IntegrityViolation("A row with the same unique value already exists", reason="unique")
    if "not null" in raw or "null value" in raw:
        return IntegrityViolation("A required field is missing", reason="not_null")
    return IntegrityViolation(f"Constraint violated: {exc.orig}")


def _is_identifier(value: Any) -> bool:
    if isinstance(value, uuid.UUID):
        return True
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


class Repository(Generic[ModelT]):
    """Uniform CRUD over one entity."""

    default_order: tuple[str, bool] | None = None  # (column, descending)

    def __init__(self, storage: "Storage", model: type[ModelT]):
        self.storage = storage
        self.model = model

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def _column(self, field: str):
        column = self.model.__table__.columns.get(field)
        if column is None:
            raise ValueError(f"{self.name} has no field '{field}'")
        return getattr(self.model, field)

    async def insert(self, data: dict[str, Any]) -> ModelT:
        async def _op(db: AsyncSession) -> ModelT:
            obj = self.model(**data)
            db.add(obj)
            await db.commit()
            await db.refresh(obj)
            return obj

        return await self.storage.run(_op)

    async def get(self, record_id: Any) -> ModelT | None:
        if not _is_identifier(record_id):
            return None

        async def _op(db: AsyncSession) -> ModelT | None:
            return await db.get(self.model, str(record_id))

        return await self.storage.run(_op)

    async def list(
        self,
        filters: dict[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[ModelT]:
        query = select(self.model)
        for field, value in (filters or {}).items():
            if value is None:
                continue
            column = self._column(field)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.where(column.in_(list(value)))
            else:
                query = query.where(column == value)

        if order_by is not None:
            column = self._column(order_by)
            query = query.order_by(column.desc() if descending else column.asc())
        elif self.default_order is not None:
            field, desc = self.default_order
            column = self._column(field)
            query = query.order_by(column.desc() if desc else column.asc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return await self.fetch(query)

    async def fetch(self, query) -> list[ModelT]:
        async def _op(db: AsyncSession) -> list[ModelT]:
            result = await db.execute(query)
            return list(result.scalars().all())

        return await self.storage.run(_op)

    def _check_patch(self, patch: dict[str, Any]) -> None:
        blocked = [field for field in patch if field in self.model.immutable_fields]
        if blocked:
            raise IntegrityViolation(
                f"{self.name}: fields {', '.join(sorted(blocked))} cannot be changed",
                reason="immutable",
            )
        for field in patch:
            self._column(field)

    async def update(self, record_id: Any, patch: dict[str, Any]) -> ModelT | None:
        """Partial update. Returns None when the row does not exist."""
        if not _is_identifier(record_id):
            return None
        self._check_patch(patch)

        async def _op(db: AsyncSession) -> ModelT | None:
            obj = await db.get(self.model, str(record_id))
            if obj is None:
                return None
            for field, value in patch.items():
                setattr(obj, field, value)
            await db.commit()
            await db.refresh(obj)
            return obj

        return await self.storage.run(_op)

    async def delete(self, record_id: Any) -> bool:
        if not _is_identifier(record_id):
            return False

        async def _op(db: AsyncSession) -> bool:
            result = await db.execute(sa_delete(self.model).where(self.model.id == str(record_id)))
            await db.commit()
            return result.rowcount > 0

        return await self.storage.run(_op)


# ─── Entity-specific queries ───────────────────────────────────────────────


class UserRepository(Repository[User]):
    async def get_by_username(self, username: str) -> User | None:
        rows = await self.list({"username": username}, limit=1)
        return rows[0] if rows else None


class EmployeeRepository(Repository[Employee]):
    async def by_branch(self, branch_id: str) -> list[Employee]:
        return await self.list({"branch_id": branch_id})


class CustomerRepository(Repository[Customer]):
    async def search(self, term: str, filters: dict[str, Any] | None = None) -> list[Customer]:
        """Case-insensitive match on shop name / owner name, substring match on phone."""
        pattern = f"%{term.lower()}%"
        query = select(Customer).where(
            or_(
                Customer.shop_name.ilike(pattern),
                Customer.owner_name.ilike(pattern),
                Customer.phone.contains(term),
            )
        )
        for field, value in (filters or {}).items():
            if value is not None:
                query = query.where(self._column(field) == value)
        return await self.fetch(query)


class PosDeviceRepository(Repository[PosDevice]):
    async def by_customer(self, customer_id: str) -> list[PosDevice]:
        return await self.list({"customer_id": customer_id})

    async def update_status(self, device_id: Any, patch: dict[str, Any]) -> tuple[str, PosDevice] | None:
        """
        Patch a device and return (status before the patch, updated device).

        The read and the write share one session; on PostgreSQL the row is
        locked with SELECT ... FOR UPDATE until the commit.
        """
        if not _is_identifier(device_id):
            return None
        self._check_patch(patch)
        query = select(PosDevice).where(PosDevice.id == str(device_id))
        if not self.storage.config.is_embedded:
            query = query.with_for_update()

        async def _op(db: AsyncSession) -> tuple[str, PosDevice] | None:
            device = (await db.execute(query)).scalar_one_or_none()
            if device is None:
                return None
            old_status = device.status
            for field, value in patch.items():
                setattr(device, field, value)
            await db.commit()
            await db.refresh(device)
            return old_status, device

        return await self.storage.run(_op)


class TransactionRepository(Repository[Transaction]):
    default_order = ("transaction_date", True)

    async def between(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        pos_device_id: str | None = None,
    ) -> list[Transaction]:
        query = select(Transaction)
        if pos_device_id is not None:
            query = query.where(Transaction.pos_device_id == pos_device_id)
        if start is not None:
            query = query.where(Transaction.transaction_date >= start)
        if end is not None:
            query = query.where(Transaction.transaction_date <= end)
        query = query.order_by(Transaction.transaction_date.desc())
        return await self.fetch(query)

    async def delete(self, record_id: Any) -> bool:
        raise IntegrityViolation("transactions are immutable", reason="immutable")


class AlertRepository(Repository[Alert]):
    default_order = ("created_at", True)

    async def unread(self) -> list[Alert]:
        return await self.list({"is_read": False})

    async def mark_read(self, alert_id: str) -> Alert | None:
        return await self.update(alert_id, {"is_read": True})


class TerritoryRepository(Repository[Territory]):
    async def active(self) -> list[Territory]:
        return await self.list({"is_active": True})


class AccessLogRepository(Repository[CustomerAccessLog]):
    default_order = ("access_time", True)


# ─── Storage handle ─────────────────────────────────────────────────────────


class Storage:
    """The single storage handle shared by every request."""

    def __init__(self, config: StorageConfig, engine: AsyncEngine):
        self.config = config
        self.engine = engine
        self.session_factory = create_session_factory(engine)

        self.users = UserRepository(self, User)
        self.branches = Repository(self, Branch)
        self.employees = EmployeeRepository(self, Employee)
        self.banking_units = Repository(self, BankingUnit)
        self.customers = CustomerRepository(self, Customer)
        self.pos_devices = PosDeviceRepository(self, PosDevice)
        self.transactions = TransactionRepository(self, Transaction)
        self.alerts = AlertRepository(self, Alert)
        self.monthly_stats = Repository(self, PosMonthlyStats)
        self.visits = Repository(self, Visit)
        self.territories = TerritoryRepository(self, Territory)
        self.access_logs = AccessLogRepository(self, CustomerAccessLog)

    @property
    def backend(self) -> str:
        return self.config.backend

    async def run(self, operation: Callable[[AsyncSession], Awaitable[ResultT]]) -> ResultT:
        """Run one unit of work in a fresh session, translating backend errors."""
        timeout = None if self.config.is_embedded else self.config.timeout_seconds
        async with self.session_factory() as db:
            try:
                return await asyncio.wait_for(operation(db), timeout=timeout)
            except IntegrityError as exc:
                await db.rollback()
                raise _classify_integrity_error(exc) from exc
            except asyncio.TimeoutError as exc:
                logger.warning("storage.timeout", backend=self.backend, timeout=timeout)
                raise StorageUnavailable(
                    f"Storage did not answer within {timeout}s", timed_out=True
                ) from exc
            except StatementError as exc:
                if isinstance(exc.orig, ValueError):
                    await db.rollback()
                    raise IntegrityViolation(f"Invalid value: {exc.orig}", reason="invalid_value") from exc
                if isinstance(exc, (OperationalError, DBAPIError)) and exc.connection_invalidated:
                    raise StorageUnavailable(f"Storage connection lost: {exc.orig}") from exc
                raise
            except OSError as exc:
                raise StorageUnavailable(f"Storage unreachable: {exc}") from exc

    async def init_schema(self) -> None:
        """CREATE TABLE IF NOT EXISTS for every table; safe to run repeatedly."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


async def init_storage(config: StorageConfig) -> Storage:
    """
    Open the selected backend and make sure its schema exists.

    Raises ConfigurationError / StorageUnavailable on any failure; callers
    abort startup instead of serving against a half-initialized store.
    """
    engine = create_storage_engine(config)
    storage = Storage(config, engine)
    location = str(config.database_path) if config.is_embedded else engine.url.render_as_string()
    timeout = None if config.is_embedded else config.timeout_seconds

    try:
        await asyncio.wait_for(storage.init_schema(), timeout=timeout)
        await asyncio.wait_for(storage.ping(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        await engine.dispose()
        logger.error("storage.init_timeout", backend=config.backend, location=location, timeout=timeout)
        raise StorageUnavailable(f"Timed out connecting to {location}", timed_out=True) from exc
    except (OSError, DBAPIError, StorageError) as exc:
        await engine.dispose()
        cause = getattr(exc, "orig", None) or exc
        logger.error("storage.init_failed", backend=config.backend, location=location, error=str(cause))
        if config.is_embedded:
            raise ConfigurationError(f"Cannot open embedded database at {location}: {cause}") from exc
        raise StorageUnavailable(f"Cannot connect to remote database {location}: {cause}") from exc

    logger.info("storage.initialized", backend=config.backend, location=location)
    return storage
