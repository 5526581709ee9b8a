"""
Schema parity layer: logical column types resolved per backend.

Every model column is declared once with a logical type from this module.
The physical type is looked up in PHYSICAL_TYPES for the active dialect,
and values are converted on the way in and out so that a value read back
through either backend equals what was written (to the declared precision).

    logical     postgresql              sqlite
    ----------  ----------------------  ------------------------------
    identifier  UUID                    VARCHAR(36)
    string      VARCHAR(n) / TEXT       TEXT
    integer     BIGINT                  INTEGER
    decimal     NUMERIC(p, s)           TEXT   fixed-precision "38.08000000"
    boolean     BOOLEAN                 INTEGER 0/1
    timestamp   TIMESTAMPTZ             INTEGER epoch milliseconds (UTC)
    enum        TEXT                    TEXT   membership checked by validators
    json        JSONB                   TEXT   JSON-encoded
"""

import enum
import json
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_EVEN, Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    types,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID

UNCLASSIFIED = "unclassified"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class LogicalType(str, enum.Enum):
    IDENTIFIER = "identifier"
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    ENUM = "enum"
    JSON = "json"


# logical type -> dialect -> factory(column_type) -> physical SQLAlchemy type
PHYSICAL_TYPES: dict[LogicalType, dict[str, Callable[["LogicalColumnType"], types.TypeEngine]]] = {
    LogicalType.IDENTIFIER: {
        "postgresql": lambda t: PG_UUID(as_uuid=False),
        "sqlite": lambda t: String(36),
    },
    LogicalType.STRING: {
        "postgresql": lambda t: String(t.length) if t.length else Text(),
        "sqlite": lambda t: Text(),
    },
    LogicalType.INTEGER: {
        "postgresql": lambda t: BigInteger(),
        "sqlite": lambda t: Integer(),
    },
    LogicalType.DECIMAL: {
        "postgresql": lambda t: Numeric(t.precision, t.scale, asdecimal=True),
        "sqlite": lambda t: Text(),
    },
    LogicalType.BOOLEAN: {
        "postgresql": lambda t: Boolean(),
        "sqlite": lambda t: Integer(),
    },
    LogicalType.TIMESTAMP: {
        "postgresql": lambda t: DateTime(timezone=True),
        "sqlite": lambda t: Integer(),
    },
    LogicalType.ENUM: {
        "postgresql": lambda t: Text(),
        "sqlite": lambda t: Text(),
    },
    LogicalType.JSON: {
        "postgresql": lambda t: JSONB(),
        "sqlite": lambda t: Text(),
    },
}

_DIALECTS = {
    "postgresql": postgresql.dialect(),
    "sqlite": sqlite.dialect(),
}


def resolve_physical_type(column_type: "LogicalColumnType", dialect_name: str) -> types.TypeEngine:
    """Physical type for a logical column on the named dialect."""
    by_dialect = PHYSICAL_TYPES[column_type.logical_type]
    factory = by_dialect.get(dialect_name, by_dialect["sqlite"])
    return factory(column_type)


class LogicalColumnType(TypeDecorator):
    """Base for all logical types; physical type comes from PHYSICAL_TYPES."""

    impl = types.String
    cache_ok = True
    logical_type: LogicalType
    length: int | None = None
    precision: int | None = None
    scale: int | None = None

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(resolve_physical_type(self, dialect.name))


class Identifier(LogicalColumnType):
    """Opaque UUID-shaped identifier; always surfaces as a lowercase string."""

    logical_type = LogicalType.IDENTIFIER
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return str(value if isinstance(value, uuid.UUID) else uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return str(value)


class Str(LogicalColumnType):
    logical_type = LogicalType.STRING
    cache_ok = True

    def __init__(self, length: int | None = None):
        super().__init__()
        self.length = length


class Int(LogicalColumnType):
    logical_type = LogicalType.INTEGER
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else int(value)

    def process_result_value(self, value, dialect):
        return None if value is None else int(value)


class FixedDecimal(LogicalColumnType):
    """Fixed-precision decimal. Stored as text on SQLite to avoid float drift."""

    logical_type = LogicalType.DECIMAL
    cache_ok = True

    def __init__(self, precision: int, scale: int):
        super().__init__()
        self.precision = precision
        self.scale = scale

    @property
    def quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.scale)

    def quantize(self, value) -> Decimal:
        if not isinstance(value, Decimal):
            # str() first so floats keep their shortest repr, not binary noise
            value = Decimal(str(value))
        return value.quantize(self.quantum, rounding=ROUND_HALF_EVEN)

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        quantized = self.quantize(value)
        if dialect.name == "postgresql":
            return quantized
        return format(quantized, "f")

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return self.quantize(value)


class Bool(LogicalColumnType):
    logical_type = LogicalType.BOOLEAN
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return bool(value)
        return 1 if value else 0

    def process_result_value(self, value, dialect):
        return None if value is None else bool(value)


def to_utc(value: datetime) -> datetime:
    """Aware UTC datetime truncated to milliseconds. Naive input is taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utcnow() -> datetime:
    return to_utc(datetime.now(timezone.utc))


class Timestamp(LogicalColumnType):
    """UTC timestamp at millisecond precision; epoch milliseconds on SQLite."""

    logical_type = LogicalType.TIMESTAMP
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        value = to_utc(value)
        if dialect.name == "postgresql":
            return value
        return (value - EPOCH) // timedelta(milliseconds=1)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, datetime):
            return to_utc(value)
        return EPOCH + timedelta(milliseconds=int(value))


class EnumText(LogicalColumnType):
    """
    Enumerated value stored as free text on both backends.

    The engine never rejects an unknown member; readers see UNCLASSIFIED
    instead of failing.
    """

    logical_type = LogicalType.ENUM
    cache_ok = True

    def __init__(self, members: tuple[str, ...]):
        super().__init__()
        self.members = tuple(members)

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return value if value in self.members else UNCLASSIFIED


class OpaqueJSON(LogicalColumnType):
    logical_type = LogicalType.JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.loads(value)


def describe_schema(metadata) -> dict[str, dict[str, dict[str, str]]]:
    """Mapping table of every table/column: logical type and both physical types."""
    description: dict[str, dict[str, dict[str, str]]] = {}
    for table in metadata.sorted_tables:
        columns: dict[str, dict[str, str]] = {}
        for column in table.columns:
            col_type = column.type
            if not isinstance(col_type, LogicalColumnType):
                continue
            entry = {"logical": col_type.logical_type.value}
            for name, dialect in _DIALECTS.items():
                entry[name] = resolve_physical_type(col_type, name).compile(dialect=dialect)
            if isinstance(col_type, EnumText):
                entry["members"] = ",".join(col_type.members)
            columns[column.name] = entry
        description[table.name] = columns
    return description
