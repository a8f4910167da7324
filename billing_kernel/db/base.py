"""Declarative base for the kernel's ORM models (surrogate integer id, tz-aware datetimes)."""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {datetime: DateTime(timezone=True)}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
