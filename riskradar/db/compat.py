"""
Database compatibility layer.

Column types that behave the same on SQLite (dev, tests) and PostgreSQL (prod):
- GUID: native UUID on PostgreSQL, CHAR(36) elsewhere
- JSONType: JSONB on PostgreSQL, JSON elsewhere
- Percent: NUMERIC(12, 2) stored, plain float in Python
"""

import uuid
from decimal import Decimal

from sqlalchemy import JSON, Numeric, String, TypeDecorator
from sqlalchemy.dialects import postgresql


class GUID(TypeDecorator):
    """UUID column; accepts uuid.UUID or its string form on bind."""

    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.UUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        if dialect.name == "postgresql":
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


class JSONType(TypeDecorator):
    """JSON document column (signal details, conflict snapshots)."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.JSONB)
        return dialect.type_descriptor(JSON)


class Percent(TypeDecorator):
    """Percentage / money column exposed as float.

    Interval and day-bucket math runs on floats; Decimal never leaks out of
    the persistence layer.
    """

    impl = Numeric(12, 2)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return Decimal(str(round(float(value), 2)))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return float(value)
