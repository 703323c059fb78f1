"""
Keyed record storage model.
"""
from datetime import datetime, timezone

from sqlmodel import Column, Field, SQLModel, Text


class StoredRecord(SQLModel, table=True):
    """A list of JSON records stored under one key (assignments, submissions, ...)."""

    __tablename__ = "stored_records"

    key: str = Field(primary_key=True, max_length=100)
    records_json: str = Field(default="[]", sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
