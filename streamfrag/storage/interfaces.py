"""Storage interface definitions for stream fragmentation.

Stores own durability, not semantics: the fragmenter decides what to write
and the stores persist it. Every method is a suspension point; backend
failures surface as `StoreError`.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

from pydantic import BaseModel

from streamfrag.bucket import Bucket
from streamfrag.member import Member
from streamfrag.relation import Relation

SDS_STREAM = "https://w3id.org/sds#Stream"


class StreamMetadata(BaseModel):
    """Metadata record of a stream, written once by bootstrap."""

    model_config = {"frozen": True}

    stream_id: str
    value: str
    type: str = SDS_STREAM


class BucketStorageInterface(ABC):
    """Abstract interface for bucket storage operations.

    Buckets are keyed by ``(stream_id, bucket_id)``.
    """

    @abstractmethod
    async def find_bucket(self, stream_id: str, bucket_id: str) -> Bucket | None:
        """Retrieve a bucket, or None if not found."""

    @abstractmethod
    async def insert_bucket(self, bucket: Bucket) -> None:
        """Store a new bucket.

        Raises:
            DuplicateBucketError: if ``(stream_id, bucket_id)`` already exists.
        """

    @abstractmethod
    async def append_member_ids(self, stream_id: str, bucket_id: str, member_ids: Sequence[str]) -> None:
        """Append member identifiers to a bucket's member list, in order.

        Raises:
            NotFoundError: if the bucket does not exist.
        """

    @abstractmethod
    async def append_relations(self, stream_id: str, bucket_id: str, relations: Sequence[Relation]) -> None:
        """Append relations to a bucket's relation list, in order.

        Raises:
            NotFoundError: if the bucket, or a relation's destination bucket,
                does not exist.
        """

    @abstractmethod
    async def set_fields(
        self,
        stream_id: str,
        bucket_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> None:
        """Set `start` and/or `end` on an existing bucket; None leaves a field as is.

        Raises:
            NotFoundError: if the bucket does not exist.
        """

    @abstractmethod
    async def find_most_recent_by_start(self, stream_id: str) -> Bucket | None:
        """Return the bucket with the latest start, or None.

        Buckets without a start (the root) are never returned. Ties on start
        are broken by the greater bucket identifier.
        """

    @abstractmethod
    async def list_buckets(self, stream_id: str) -> list[Bucket]:
        """All buckets of a stream, ordered by start ascending, root first."""

    async def close(self) -> None:
        """Release connections held by the store."""


class MemberStorageInterface(ABC):
    """Abstract interface for raw member storage."""

    @abstractmethod
    async def insert_members(self, members: Sequence[Member]) -> None:
        """Persist member payloads keyed by member id.

        A member whose id is already stored replaces the earlier payload.
        """

    @abstractmethod
    async def get_member(self, member_id: str) -> Member | None:
        """Retrieve a member by ID, or None if not found."""

    @abstractmethod
    async def count(self) -> int:
        """Return total number of stored members."""

    async def close(self) -> None:
        """Release connections held by the store."""


class StreamMetadataStorageInterface(ABC):
    """Abstract interface for stream metadata."""

    @abstractmethod
    async def find_stream_meta(self, stream_id: str) -> StreamMetadata | None:
        """Retrieve a stream's metadata, or None if the stream was never initialised."""

    @abstractmethod
    async def insert_stream_meta(self, stream_id: str, description: str) -> None:
        """Store a stream's metadata."""

    async def close(self) -> None:
        """Release connections held by the store."""
