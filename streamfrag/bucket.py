"""Buckets (a.k.a. windows or fragments) and the root index.

`Bucket` is the record the bucket store persists. `Window` is the narrower
view the fragmenter works with: an identifier, a half-open ``[start, end)``
time range and the member identifiers placed so far.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from streamfrag.instant import require_aware
from streamfrag.relation import Relation

ROOT_BUCKET_ID = ""
"""Identifier of the root bucket, the single entry point of a stream."""


class Bucket(BaseModel):
    """A bounded partition of a stream's members, as persisted.

    Buckets are frozen; stores produce updated copies with
    ``bucket.model_copy(update={...})``.
    """

    model_config = {"frozen": True}

    bucket_id: str = Field(description="Unique within the stream; empty string for the root.")
    stream_id: str
    leaf: bool = True
    start: datetime | None = Field(default=None, description="Inclusive lower bound.")
    end: datetime | None = Field(default=None, description="Exclusive upper bound; unset while open.")
    members: tuple[str, ...] = ()
    relations: tuple[Relation, ...] = ()

    @field_validator("start", "end")
    @classmethod
    def instants_must_be_timezone_aware(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return value
        return require_aware(value)

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def is_root(self) -> bool:
        return self.bucket_id == ROOT_BUCKET_ID

    def to_window(self) -> Window:
        return Window(
            identifier=self.bucket_id,
            start=self.start,
            end=self.end,
            member_ids=self.members,
        )


class Window(BaseModel):
    """The fragmenter's view of a bucket.

    Unlike `Bucket`, a window is mutable: closing the current window sets its
    `end` before the change is written back with `update_window`.
    """

    model_config = {"validate_assignment": True}

    identifier: str
    start: datetime | None = None
    end: datetime | None = None
    member_ids: tuple[str, ...] = ()

    @field_validator("start", "end")
    @classmethod
    def instants_must_be_timezone_aware(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return value
        return require_aware(value)
