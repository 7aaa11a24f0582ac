"""Stream members: the identified units that get placed into buckets."""

from typing import Any

from pydantic import BaseModel, Field


class Member(BaseModel):
    """One identified unit of the stream.

    The payload is opaque to the engine except for timestamp extraction,
    which is delegated to a `TimestampExtractorInterface`. Members are
    immutable once created and are never deleted by the engine.
    """

    model_config = {"frozen": True}

    member_id: str = Field(min_length=1, description="Stable identifier, unique within the stream.")
    payload: Any = Field(
        default=None,
        description="Opaque JSON-serialisable content (a mapping or a sequence of triples).",
    )
