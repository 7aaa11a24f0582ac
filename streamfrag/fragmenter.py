"""Timestamp fragmentation of an append-only member stream.

This module provides `TimestampFragmenter`, which places incoming members
into a chain of bounded-capacity buckets reachable from a single root bucket.

For every member the fragmenter:

    1. Finds the current bucket (the one with the latest start)
    2. Checks its occupancy against the configured page size
    3. If there is room, stores the member and appends its id to the bucket
    4. Otherwise splits: the member's timestamp becomes the boundary, a new
       bucket starting at that instant is created and linked from the root
       with a ``>=`` relation, and the current bucket is closed at the same
       instant and linked from the root with a ``<`` relation

Steps 1-4 run inside a per-stream lock, so a single fragmenter never emits
two splits for one boundary or overfills a bucket. Use one fragmenter per
stream per process.

Example usage:
    ```python
    fragmenter = TimestampFragmenter(
        stream_id="https://example.org/streams/sensors",
        config=FragmentationConfig(page_size=50, timestamp_path=SOSA_RESULT_TIME),
        bucket_storage=InMemoryBucketStorage(),
        member_storage=InMemoryMemberStorage(),
        timestamp_extractor=PayloadTimestampExtractor(),
    )
    result = await fragmenter.publish(members)
    print(f"{result.splits} splits, {result.members_placed} members placed")
    ```
"""

import asyncio
from typing import Iterable

from pydantic import BaseModel

from streamfrag.bucket import ROOT_BUCKET_ID, Bucket, Window
from streamfrag.config import FragmentationConfig, SplitMemberPlacement
from streamfrag.errors import InvalidWindowError, NotFoundError, OutOfOrderError
from streamfrag.instant import to_iso, truncate_millis, window_identifier
from streamfrag.logging import setup_logging
from streamfrag.member import Member
from streamfrag.relation import Relation, RelationType
from streamfrag.storage.interfaces import BucketStorageInterface, MemberStorageInterface
from streamfrag.timestamp import TimestampExtractorInterface


class AppendResult(BaseModel):
    """Outcome of appending one member.

    Attributes:
        member_id: Identifier of the appended member.
        bucket_id: Bucket the member was placed in, or None if it was
            discarded after triggering a split.
        split: Whether this append closed the current bucket.
        closed_bucket_id: The bucket closed by the split, if any.
        new_bucket_id: The bucket opened by the split, if any.
    """

    model_config = {"frozen": True}

    member_id: str
    bucket_id: str | None
    split: bool = False
    closed_bucket_id: str | None = None
    new_bucket_id: str | None = None


class PublishResult(BaseModel):
    """Totals for an ordered batch of appends."""

    model_config = {"frozen": True}

    members_processed: int
    members_placed: int
    splits: int
    buckets_created: tuple[str, ...] = ()
    append_results: tuple[AppendResult, ...] = ()


class TimestampFragmenter:
    """Builds the bucket chain of one stream on top of injected stores.

    The fragmenter is the only writer of bucket and relation state. Stores
    are injected so backends can be swapped without touching this logic.

    Failures are never recovered locally. A split that fails half way (for
    example after the new bucket was created but before it was linked from
    the root) leaves the written steps in place.
    """

    def __init__(
        self,
        stream_id: str,
        config: FragmentationConfig,
        bucket_storage: BucketStorageInterface,
        member_storage: MemberStorageInterface,
        timestamp_extractor: TimestampExtractorInterface,
    ):
        self.stream_id = stream_id
        self.config = config
        self.bucket_storage = bucket_storage
        self.member_storage = member_storage
        self.timestamp_extractor = timestamp_extractor
        self.root = ROOT_BUCKET_ID
        self._lock = asyncio.Lock()
        self.logger = setup_logging()

    @property
    def page_size(self) -> int | None:
        """Maximum members per bucket; None means unbounded."""
        return self.config.page_size

    @property
    def timestamp_path(self) -> str:
        """The configured timestamp path; raises ConfigurationError if unset."""
        return self.config.require_timestamp_path()

    async def most_recent_bucket(self) -> Bucket:
        """Return the bucket with the latest start.

        Raises:
            NotFoundError: if the stream has no bucket with a start, i.e. it
                was never bootstrapped.
        """
        bucket = await self.bucket_storage.find_most_recent_by_start(self.stream_id)
        if bucket is None:
            raise NotFoundError(f"No buckets present for stream {self.stream_id!r}")
        return bucket

    async def most_recent_window(self) -> Window:
        return (await self.most_recent_bucket()).to_window()

    async def occupancy(self, window: Window) -> int:
        """Current member count of the bucket behind `window`."""
        bucket = await self.bucket_storage.find_bucket(self.stream_id, window.identifier)
        if bucket is None:
            raise NotFoundError(f"Window with identifier {window.identifier!r} was not found in the database")
        return bucket.count

    async def create_window(self, window: Window) -> None:
        """Create the bucket for `window` without linking it from the root."""
        await self.bucket_storage.insert_bucket(
            Bucket(
                bucket_id=window.identifier,
                stream_id=self.stream_id,
                leaf=True,
                start=window.start,
                end=window.end,
            )
        )

    async def update_window(self, window: Window) -> None:
        """Write the window's start and end back to its bucket."""
        await self.bucket_storage.set_fields(self.stream_id, window.identifier, start=window.start, end=window.end)

    async def link_from_root(self, window: Window, relation_type: RelationType = RelationType.GTE) -> Relation:
        """Append one relation from the root to `window`.

        Lower-bound relations (``>=``, ``>``, ``=``) carry the window's start,
        upper-bound relations (``<``, ``<=``) carry its end.

        Raises:
            InvalidWindowError: if the window lacks the bound the relation needs.
            ConfigurationError: if no timestamp path is configured.
        """
        if relation_type in (RelationType.LT, RelationType.LTE):
            bound, bound_name = window.end, "end"
        else:
            bound, bound_name = window.start, "start"
        if bound is None:
            raise InvalidWindowError(
                f"Can not add window {window.identifier!r} to the root as it has no {bound_name} date value"
            )
        relation = Relation.at(relation_type, self.timestamp_path, bound, window.identifier)
        await self.bucket_storage.append_relations(self.stream_id, self.root, [relation])
        return relation

    async def append(self, member: Member) -> AppendResult:
        """Place one member, splitting the current bucket if it is full."""
        async with self._lock:
            return await self._append(member)

    async def _append(self, member: Member) -> AppendResult:
        current = await self.most_recent_window()
        size = await self.occupancy(current)

        if self.page_size is None or size + 1 <= self.page_size:
            await self._place(member, current.identifier)
            self.logger.debug(
                {"message": "Placed member", "member_id": member.member_id, "bucket": current.identifier},
                pprint=True,
            )
            return AppendResult(member_id=member.member_id, bucket_id=current.identifier)

        # everything that can fail without a write happens before the first write
        path = self.timestamp_path
        split_at = truncate_millis(await self.timestamp_extractor.extract(member.payload, path))
        if current.start is not None and split_at <= current.start:
            raise OutOfOrderError(
                f"Member {member.member_id!r} at {to_iso(split_at)} does not lie after the start "
                f"of the current bucket {current.identifier!r} ({to_iso(current.start)})"
            )

        new_window = Window(identifier=window_identifier(split_at), start=split_at)
        await self.create_window(new_window)
        await self.link_from_root(new_window, RelationType.GTE)

        current.end = split_at
        await self.update_window(current)
        await self.link_from_root(current, RelationType.LT)

        self.logger.info(
            {
                "message": "Split bucket",
                "closed_bucket": current.identifier,
                "new_bucket": new_window.identifier,
                "boundary": to_iso(split_at),
                "page_size": self.page_size,
            },
            pprint=True,
        )

        placed_in: str | None = None
        if self.config.split_member_placement == SplitMemberPlacement.NEW_BUCKET:
            await self._place(member, new_window.identifier)
            placed_in = new_window.identifier
        else:
            self.logger.debug(
                {"message": "Discarded split-triggering member", "member_id": member.member_id},
                pprint=True,
            )

        return AppendResult(
            member_id=member.member_id,
            bucket_id=placed_in,
            split=True,
            closed_bucket_id=current.identifier,
            new_bucket_id=new_window.identifier,
        )

    async def _place(self, member: Member, bucket_id: str) -> None:
        await self.member_storage.insert_members([member])
        await self.bucket_storage.append_member_ids(self.stream_id, bucket_id, [member.member_id])

    async def publish(self, members: Iterable[Member]) -> PublishResult:
        """Append members strictly in order.

        There is no atomicity across the batch: if an append fails, earlier
        appends stay in place and the error propagates.
        """
        results: list[AppendResult] = []
        for member in members:
            results.append(await self.append(member))

        return PublishResult(
            members_processed=len(results),
            members_placed=sum(1 for r in results if r.bucket_id is not None),
            splits=sum(1 for r in results if r.split),
            buckets_created=tuple(r.new_bucket_id for r in results if r.new_bucket_id is not None),
            append_results=tuple(results),
        )
