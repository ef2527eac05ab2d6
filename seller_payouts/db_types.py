"""Database-agnostic type definitions for SQLAlchemy models.

The same models run on PostgreSQL in production and SQLite in tests and
local development.
"""
from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# JSONB is PostgreSQL-specific, JSON works with both SQLite and PostgreSQL
JSONType = JSON

# UUID type that works with both databases
UUIDType = PG_UUID

# Money and percentage columns
MoneyType = Numeric(14, 2)
RateType = Numeric(5, 2)
