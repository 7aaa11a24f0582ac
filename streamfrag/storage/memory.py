"""In-memory storage implementations for testing and development.

Dictionary-based implementations of the storage interfaces that keep all
data in memory. Suitable for unit tests and quick experiments; data is lost
when the process exits and the classes are not safe for concurrent use from
several threads.

For durable storage use `streamfrag.storage.sqlite.SQLiteStorage`.
"""

from datetime import datetime
from typing import Sequence

from streamfrag.bucket import Bucket
from streamfrag.errors import DuplicateBucketError, NotFoundError
from streamfrag.member import Member
from streamfrag.relation import Relation
from streamfrag.storage.interfaces import (
    BucketStorageInterface,
    MemberStorageInterface,
    StreamMetadata,
    StreamMetadataStorageInterface,
)


def _bucket_order(bucket: Bucket) -> tuple:
    # buckets without a start (the root) sort first
    return (bucket.start is not None, bucket.start or 0, bucket.bucket_id)


class InMemoryBucketStorage(BucketStorageInterface):
    """In-memory bucket storage keyed by ``(stream_id, bucket_id)``.

    Buckets are frozen models; every update replaces the stored instance
    with a copy.

    Example:
        ```python
        storage = InMemoryBucketStorage()
        await storage.insert_bucket(Bucket(bucket_id="", stream_id="s", leaf=False))
        root = await storage.find_bucket("s", "")
        ```
    """

    def __init__(self) -> None:
        self._buckets: dict[tuple[str, str], Bucket] = {}

    def _get(self, stream_id: str, bucket_id: str) -> Bucket:
        bucket = self._buckets.get((stream_id, bucket_id))
        if bucket is None:
            raise NotFoundError(f"Bucket {bucket_id!r} of stream {stream_id!r} was not found")
        return bucket

    async def find_bucket(self, stream_id: str, bucket_id: str) -> Bucket | None:
        return self._buckets.get((stream_id, bucket_id))

    async def insert_bucket(self, bucket: Bucket) -> None:
        key = (bucket.stream_id, bucket.bucket_id)
        if key in self._buckets:
            raise DuplicateBucketError(f"Bucket {bucket.bucket_id!r} of stream {bucket.stream_id!r} already exists")
        self._buckets[key] = bucket

    async def append_member_ids(self, stream_id: str, bucket_id: str, member_ids: Sequence[str]) -> None:
        bucket = self._get(stream_id, bucket_id)
        self._buckets[(stream_id, bucket_id)] = bucket.model_copy(
            update={"members": bucket.members + tuple(member_ids)}
        )

    async def append_relations(self, stream_id: str, bucket_id: str, relations: Sequence[Relation]) -> None:
        bucket = self._get(stream_id, bucket_id)
        for relation in relations:
            self._get(stream_id, relation.bucket)
        self._buckets[(stream_id, bucket_id)] = bucket.model_copy(
            update={"relations": bucket.relations + tuple(relations)}
        )

    async def set_fields(
        self,
        stream_id: str,
        bucket_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> None:
        bucket = self._get(stream_id, bucket_id)
        update: dict[str, datetime] = {}
        if start is not None:
            update["start"] = start
        if end is not None:
            update["end"] = end
        # model_copy skips validation, so validate the result explicitly
        self._buckets[(stream_id, bucket_id)] = Bucket.model_validate(
            {**bucket.model_dump(), **update}
        )

    async def find_most_recent_by_start(self, stream_id: str) -> Bucket | None:
        candidates = [b for (sid, _), b in self._buckets.items() if sid == stream_id and b.start is not None]
        if not candidates:
            return None
        return max(candidates, key=lambda b: (b.start, b.bucket_id))

    async def list_buckets(self, stream_id: str) -> list[Bucket]:
        buckets = [b for (sid, _), b in self._buckets.items() if sid == stream_id]
        return sorted(buckets, key=_bucket_order)


class InMemoryMemberStorage(MemberStorageInterface):
    """In-memory member storage using a dictionary keyed by member_id."""

    def __init__(self) -> None:
        self._members: dict[str, Member] = {}

    async def insert_members(self, members: Sequence[Member]) -> None:
        for member in members:
            self._members[member.member_id] = member

    async def get_member(self, member_id: str) -> Member | None:
        return self._members.get(member_id)

    async def count(self) -> int:
        return len(self._members)


class InMemoryStreamMetadataStorage(StreamMetadataStorageInterface):
    """In-memory stream metadata storage keyed by stream_id."""

    def __init__(self) -> None:
        self._streams: dict[str, StreamMetadata] = {}

    async def find_stream_meta(self, stream_id: str) -> StreamMetadata | None:
        return self._streams.get(stream_id)

    async def insert_stream_meta(self, stream_id: str, description: str) -> None:
        self._streams[stream_id] = StreamMetadata(stream_id=stream_id, value=description)
