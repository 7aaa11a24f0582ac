"""
SQLModel schemas for database persistence.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class StreamMetaRow(SQLModel, table=True):
    """
    Metadata of one stream, written once by bootstrap.
    """

    __tablename__ = "stream_meta"

    stream_id: str = Field(primary_key=True)
    value: str = Field(description="Stream description")
    type: str = Field(description="Type IRI of the stream")


class MemberRow(SQLModel, table=True):
    """
    One stream member with its payload serialised to JSON text.
    """

    __tablename__ = "member"

    member_id: str = Field(primary_key=True)
    data: str = Field(description="JSON-serialised payload")


class BucketRow(SQLModel, table=True):
    """
    One bucket of a stream. Instants are written in UTC and read back as UTC.
    """

    __tablename__ = "bucket"
    __table_args__ = (UniqueConstraint("stream_id", "bucket_id", name="uq_bucket_stream_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    stream_id: str = Field(index=True)
    bucket_id: str = Field(index=True)
    leaf: bool = Field(default=True)
    start: Optional[datetime] = Field(default=None, index=True)
    end: Optional[datetime] = Field(default=None)
    members: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    relations: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    count: int = Field(default=0)
