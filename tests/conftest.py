"""Test fixtures for the fragmentation engine.

This module provides:
- In-memory storage fixtures (buckets, members, stream metadata)
- A fragmenter configured with a small page size so splits are easy to trigger
- A bootstrapped fragmenter whose stream already has a root and first window
- Helper factories for members carrying a timestamp in their payload

Payloads are plain mappings keyed by the sosa:resultTime IRI, which is what
`PayloadTimestampExtractor` reads.
"""

from datetime import datetime, timedelta, timezone

import pytest

from streamfrag.bootstrap import StreamBootstrap
from streamfrag.config import SOSA_RESULT_TIME, FragmentationConfig, StreamConfig
from streamfrag.fragmenter import TimestampFragmenter
from streamfrag.instant import to_iso
from streamfrag.member import Member
from streamfrag.storage.memory import (
    InMemoryBucketStorage,
    InMemoryMemberStorage,
    InMemoryStreamMetadataStorage,
)
from streamfrag.timestamp import PayloadTimestampExtractor

STREAM_ID = "https://example.org/streams/sensors"
T0 = datetime(2022, 8, 7, 8, 8, 21, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """Instant `minutes` after T0."""
    return T0 + timedelta(minutes=minutes)


def make_member(member_id: str, when: datetime) -> Member:
    """Create a member whose payload carries `when` as sosa:resultTime."""
    return Member(
        member_id=member_id,
        payload={SOSA_RESULT_TIME: to_iso(when), "http://example.org/value": member_id},
    )


def make_members(count: int, start_minute: int = 1, prefix: str = "m") -> list[Member]:
    """Create `count` members one minute apart, in timestamp order."""
    return [make_member(f"{prefix}{i}", at(start_minute + i)) for i in range(count)]


@pytest.fixture
def bucket_storage() -> InMemoryBucketStorage:
    return InMemoryBucketStorage()


@pytest.fixture
def member_storage() -> InMemoryMemberStorage:
    return InMemoryMemberStorage()


@pytest.fixture
def metadata_storage() -> InMemoryStreamMetadataStorage:
    return InMemoryStreamMetadataStorage()


@pytest.fixture
def extractor() -> PayloadTimestampExtractor:
    return PayloadTimestampExtractor()


@pytest.fixture
def fragmentation_config() -> FragmentationConfig:
    """Page size 2, so the third member of a bucket triggers a split."""
    return FragmentationConfig(page_size=2, timestamp_path=SOSA_RESULT_TIME)


@pytest.fixture
def stream_config() -> StreamConfig:
    return StreamConfig(stream_id=STREAM_ID, description="Sensor observations", start=T0)


@pytest.fixture
def fragmenter(
    fragmentation_config: FragmentationConfig,
    bucket_storage: InMemoryBucketStorage,
    member_storage: InMemoryMemberStorage,
    extractor: PayloadTimestampExtractor,
) -> TimestampFragmenter:
    return TimestampFragmenter(
        stream_id=STREAM_ID,
        config=fragmentation_config,
        bucket_storage=bucket_storage,
        member_storage=member_storage,
        timestamp_extractor=extractor,
    )


@pytest.fixture
def bootstrap(fragmenter: TimestampFragmenter, metadata_storage: InMemoryStreamMetadataStorage) -> StreamBootstrap:
    return StreamBootstrap(fragmenter, metadata_storage)


@pytest.fixture
async def ready_fragmenter(
    fragmenter: TimestampFragmenter,
    bootstrap: StreamBootstrap,
    stream_config: StreamConfig,
) -> TimestampFragmenter:
    """A fragmenter whose stream has been bootstrapped at T0."""
    await bootstrap.bootstrap(stream_config)
    return fragmenter
