"""
POS Monitor Database Models

12 tables, declared once and realized on PostgreSQL (hosted) or SQLite
(desktop/offline) through the logical types in db.types.

Tables:
  1. users                 - Dashboard accounts
  2. branches              - Banking branches (geo + monthly target)
  3. employees             - Staff, optionally assigned to a branch
  4. banking_units         - Finer-grained units (branch/counter/kiosk)
  5. customers             - Merchant locations hosting POS terminals
  6. pos_devices           - Terminals; status is watched for realtime push
  7. transactions          - Immutable financial events per terminal
  8. alerts                - Notifications; inserts are watched for realtime push
  9. pos_monthly_stats     - Monthly aggregates per customer/branch
  10. visits               - Field visit log
  11. territories          - Named GeoJSON regions for coverage analytics
  12. customer_access_logs - Audit of who opened a customer record
"""

import uuid

from sqlalchemy import Column, ForeignKey, Index, inspect

from db.session import Base
from db.types import (
    Bool,
    EnumText,
    FixedDecimal,
    Identifier,
    Int,
    OpaqueJSON,
    Str,
    Timestamp,
    utcnow,
)

CUSTOMER_STATUSES = ("active", "normal", "marketing", "collected", "loss")
DEVICE_STATUSES = ("active", "offline", "maintenance")
ALERT_TYPES = ("error", "warning", "info")
ALERT_PRIORITIES = ("high", "medium", "low")
BANKING_UNIT_TYPES = ("branch", "counter", "shahrbnet_kiosk")
VISIT_TYPES = ("routine", "support", "installation", "maintenance")
ACCESS_TYPES = ("view_details", "add_visit")


def new_id() -> str:
    return str(uuid.uuid4())


def Latitude():
    return FixedDecimal(10, 8)


def Longitude():
    return FixedDecimal(11, 8)


class ModelMixin:
    """Fields every entity shares and a plain-dict view of a row."""

    # Columns that may never change after insert
    immutable_fields: tuple[str, ...] = ("id", "created_at")

    def to_dict(self) -> dict:
        return {attr.key: getattr(self, attr.key) for attr in inspect(self).mapper.column_attrs}


# ─── 1. Users ───────────────────────────────────────────────────────────────


class User(ModelMixin, Base):
    __tablename__ = "users"

    id = Column(Identifier(), primary_key=True, default=new_id)
    username = Column(Str(), nullable=False, unique=True)
    password = Column(Str(), nullable=False)
    name = Column(Str(), nullable=False)
    role = Column(Str(), nullable=False)
    created_at = Column(Timestamp(), default=utcnow)


# ─── 2. Branches ────────────────────────────────────────────────────────────


class Branch(ModelMixin, Base):
    __tablename__ = "branches"

    id = Column(Identifier(), primary_key=True, default=new_id)
    name = Column(Str(), nullable=False)
    code = Column(Str(), nullable=False, unique=True)
    type = Column(Str(), nullable=False)
    manager = Column(Str())
    phone = Column(Str())
    address = Column(Str())
    latitude = Column(Latitude())
    longitude = Column(Longitude())
    coverage_radius = Column(Int(), default=5)  # km
    monthly_target = Column(Int(), default=0)
    performance = Column(Int(), default=0)  # percent of target
    created_at = Column(Timestamp(), default=utcnow)


# ─── 3. Employees ───────────────────────────────────────────────────────────


class Employee(ModelMixin, Base):
    __tablename__ = "employees"

    id = Column(Identifier(), primary_key=True, default=new_id)
    employee_code = Column(Str(), nullable=False, unique=True)
    name = Column(Str(), nullable=False)
    position = Column(Str(), nullable=False)
    phone = Column(Str())
    email = Column(Str())
    branch_id = Column(Identifier(), ForeignKey("branches.id"))
    salary = Column(Int(), default=0)
    hire_date = Column(Timestamp(), default=utcnow)
    is_active = Column(Bool(), default=True)
    created_at = Column(Timestamp(), default=utcnow)

    __table_args__ = (Index("ix_employees_branch", "branch_id"),)


# ─── 4. Banking Units ───────────────────────────────────────────────────────


class BankingUnit(ModelMixin, Base):
    __tablename__ = "banking_units"

    id = Column(Identifier(), primary_key=True, default=new_id)
    code = Column(Str(50), nullable=False, unique=True)
    name = Column(Str(255), nullable=False)
    unit_type = Column(EnumText(BANKING_UNIT_TYPES), nullable=False)
    manager_name = Column(Str(255))
    phone = Column(Str(20))
    address = Column(Str())
    latitude = Column(Latitude())
    longitude = Column(Longitude())
    is_active = Column(Bool(), default=True)
    created_at = Column(Timestamp(), default=utcnow)
    updated_at = Column(Timestamp(), default=utcnow, onupdate=utcnow)


# ─── 5. Customers ───────────────────────────────────────────────────────────


class Customer(ModelMixin, Base):
    __tablename__ = "customers"

    id = Column(Identifier(), primary_key=True, default=new_id)
    national_id = Column(Str())
    shop_name = Column(Str(), nullable=False)
    owner_name = Column(Str(), nullable=False)
    phone = Column(Str(), nullable=False)
    business_type = Column(Str(), nullable=False)
    address = Column(Str())
    latitude = Column(Latitude())
    longitude = Column(Longitude())
    monthly_profit = Column(Int(), default=0)
    status = Column(EnumText(CUSTOMER_STATUSES), nullable=False, default="active")
    branch_id = Column(Identifier(), ForeignKey("branches.id"))
    banking_unit_id = Column(Identifier(), ForeignKey("banking_units.id"))
    support_employee_id = Column(Identifier(), ForeignKey("employees.id"))
    install_date = Column(Timestamp())
    created_at = Column(Timestamp(), default=utcnow)

    __table_args__ = (
        Index("ix_customers_branch", "branch_id"),
        Index("ix_customers_status", "status"),
    )


# ─── 6. POS Devices ─────────────────────────────────────────────────────────


class PosDevice(ModelMixin, Base):
    __tablename__ = "pos_devices"

    id = Column(Identifier(), primary_key=True, default=new_id)
    customer_id = Column(Identifier(), ForeignKey("customers.id"), nullable=False)
    device_code = Column(Str(), nullable=False, unique=True)
    status = Column(EnumText(DEVICE_STATUSES), nullable=False, default="active")
    last_connection = Column(Timestamp())
    created_at = Column(Timestamp(), default=utcnow)

    __table_args__ = (Index("ix_pos_devices_customer", "customer_id"),)


# ─── 7. Transactions ────────────────────────────────────────────────────────


class Transaction(ModelMixin, Base):
    __tablename__ = "transactions"

    immutable_fields = ("id", "pos_device_id", "amount", "transaction_date", "created_at")

    id = Column(Identifier(), primary_key=True, default=new_id)
    pos_device_id = Column(Identifier(), ForeignKey("pos_devices.id"), nullable=False)
    amount = Column(Int(), nullable=False)
    transaction_date = Column(Timestamp(), default=utcnow)
    created_at = Column(Timestamp(), default=utcnow)

    __table_args__ = (Index("ix_transactions_device_date", "pos_device_id", "transaction_date"),)


# ─── 8. Alerts ──────────────────────────────────────────────────────────────


class Alert(ModelMixin, Base):
    __tablename__ = "alerts"

    id = Column(Identifier(), primary_key=True, default=new_id)
    title = Column(Str(), nullable=False)
    message = Column(Str(), nullable=False)
    type = Column(EnumText(ALERT_TYPES), nullable=False)
    priority = Column(EnumText(ALERT_PRIORITIES), nullable=False, default="medium")
    is_read = Column(Bool(), default=False)
    customer_id = Column(Identifier(), ForeignKey("customers.id"))
    created_at = Column(Timestamp(), default=utcnow)

    __table_args__ = (Index("ix_alerts_read_created", "is_read", "created_at"),)


# ─── 9. POS Monthly Stats ───────────────────────────────────────────────────


class PosMonthlyStats(ModelMixin, Base):
    __tablename__ = "pos_monthly_stats"

    id = Column(Identifier(), primary_key=True, default=new_id)
    customer_id = Column(Identifier(), ForeignKey("customers.id"))
    branch_id = Column(Identifier(), ForeignKey("branches.id"))
    year = Column(Int(), nullable=False)
    month = Column(Int(), nullable=False)  # 1-12
    total_transactions = Column(Int(), default=0)
    total_amount = Column(Int(), default=0)
    revenue = Column(Int(), default=0)
    profit = Column(Int(), default=0)
    status = Column(EnumText(CUSTOMER_STATUSES), nullable=False, default="active")
    notes = Column(Str())
    created_at = Column(Timestamp(), default=utcnow)

    __table_args__ = (Index("ix_monthly_stats_period", "year", "month"),)


# ─── 10. Visits ─────────────────────────────────────────────────────────────


class Visit(ModelMixin, Base):
    __tablename__ = "visits"

    id = Column(Identifier(), primary_key=True, default=new_id)
    customer_id = Column(Identifier(), ForeignKey("customers.id"))
    employee_id = Column(Identifier(), ForeignKey("employees.id"))
    visit_date = Column(Timestamp(), nullable=False)
    notes = Column(Str())
    visit_type = Column(EnumText(VISIT_TYPES), nullable=False, default="routine")
    duration = Column(Int())  # minutes
    result = Column(Str())
    created_at = Column(Timestamp(), default=utcnow)

    __table_args__ = (Index("ix_visits_customer", "customer_id"),)


# ─── 11. Territories ────────────────────────────────────────────────────────


class Territory(ModelMixin, Base):
    __tablename__ = "territories"

    id = Column(Identifier(), primary_key=True, default=new_id)
    name = Column(Str(), nullable=False)
    color = Column(Str(7), nullable=False, default="#3b82f6")
    assigned_banking_unit_id = Column(Identifier(), ForeignKey("banking_units.id"))
    business_focus = Column(Str())
    auto_named = Column(Bool(), default=False)
    geometry = Column(OpaqueJSON(), nullable=False)  # GeoJSON Polygon / MultiPolygon
    bbox = Column(OpaqueJSON(), nullable=False)  # [minLng, minLat, maxLng, maxLat]
    is_active = Column(Bool(), default=True)
    created_at = Column(Timestamp(), default=utcnow)
    updated_at = Column(Timestamp(), default=utcnow, onupdate=utcnow)


# ─── 12. Customer Access Logs ───────────────────────────────────────────────


class CustomerAccessLog(ModelMixin, Base):
    __tablename__ = "customer_access_logs"

    immutable_fields = ("id", "customer_id", "access_type", "access_time")

    id = Column(Identifier(), primary_key=True, default=new_id)
    customer_id = Column(Identifier(), ForeignKey("customers.id"), nullable=False)
    access_type = Column(EnumText(ACCESS_TYPES), nullable=False)
    user_agent = Column(Str())
    ip_address = Column(Str())
    customer_summary = Column(OpaqueJSON())
    access_time = Column(Timestamp(), default=utcnow)

    __table_args__ = (Index("ix_access_logs_customer", "customer_id"),)
