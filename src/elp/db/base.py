"""Declarative base and portable column types."""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# BIGSERIAL on PostgreSQL, INTEGER PRIMARY KEY (rowid alias) on SQLite.
BigIntId = BigInteger().with_variant(Integer, "sqlite")

JSONDict = JSON().with_variant(JSONB, "postgresql")


class Base(DeclarativeBase):
    pass
