"""Declarative base and the column types shared by the period engine tables."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, DateTime, Numeric, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Amounts in either currency, to the cent
Money = Numeric(15, 2)
# Exchange rates; ZWL quotes need the extra places
Rate = Numeric(18, 6)
# 0-100 split percentages
Percentage = Numeric(5, 2)
# Tax band rates as fractions of one
Fraction = Numeric(5, 4)
# Worked and base hours on custom transactions
Hours = Numeric(7, 2)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        date: Date(),
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Row creation and last-change times, set by the database."""

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
