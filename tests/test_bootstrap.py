"""Tests for StreamBootstrap.

Bootstrap must create exactly one root bucket and one first window linked by
a >= relation at the configured start, write the stream metadata once, and
do nothing on a second run.
"""

from datetime import timedelta

import pytest

from streamfrag.bootstrap import BootstrapStatus, StreamBootstrap
from streamfrag.bucket import ROOT_BUCKET_ID, Bucket
from streamfrag.config import FragmentationConfig, StreamConfig
from streamfrag.errors import ConfigurationError
from streamfrag.fragmenter import TimestampFragmenter
from streamfrag.instant import to_iso, window_identifier
from streamfrag.relation import RelationType
from streamfrag.storage.interfaces import SDS_STREAM
from streamfrag.storage.memory import InMemoryStreamMetadataStorage

from tests.conftest import STREAM_ID, T0, at


class TestFreshStream:
    async def test_creates_root_and_first_window(
        self, bootstrap: StreamBootstrap, stream_config: StreamConfig, fragmenter: TimestampFragmenter
    ) -> None:
        status = await bootstrap.bootstrap(stream_config)

        assert status == BootstrapStatus.CREATED
        buckets = await fragmenter.bucket_storage.list_buckets(STREAM_ID)
        assert [b.bucket_id for b in buckets] == [ROOT_BUCKET_ID, "1659859701000"]
        first = buckets[1]
        assert first.bucket_id == window_identifier(T0)
        assert first.start == T0
        assert first.end is None
        assert first.leaf
        assert not buckets[0].leaf

    async def test_root_links_first_window(
        self, bootstrap: StreamBootstrap, stream_config: StreamConfig, fragmenter: TimestampFragmenter
    ) -> None:
        await bootstrap.bootstrap(stream_config)

        root = await fragmenter.bucket_storage.find_bucket(STREAM_ID, ROOT_BUCKET_ID)
        assert root is not None
        assert len(root.relations) == 1
        relation = root.relations[0]
        assert relation.type == RelationType.GTE
        assert relation.value == "2022-08-07T08:08:21.000Z"
        assert relation.value == to_iso(T0)
        assert relation.bucket == window_identifier(T0)

    async def test_start_is_truncated_to_millis(
        self, bootstrap: StreamBootstrap, stream_config: StreamConfig, fragmenter: TimestampFragmenter
    ) -> None:
        precise = stream_config.model_copy(update={"start": T0 + timedelta(microseconds=250)})

        await bootstrap.bootstrap(precise)

        first = await fragmenter.bucket_storage.find_bucket(STREAM_ID, window_identifier(T0))
        assert first is not None
        assert first.start == T0
        root = await fragmenter.bucket_storage.find_bucket(STREAM_ID, ROOT_BUCKET_ID)
        assert root.relations[0].value == to_iso(first.start)

    async def test_writes_stream_metadata(
        self,
        bootstrap: StreamBootstrap,
        stream_config: StreamConfig,
        metadata_storage: InMemoryStreamMetadataStorage,
    ) -> None:
        await bootstrap.bootstrap(stream_config)

        meta = await metadata_storage.find_stream_meta(STREAM_ID)
        assert meta is not None
        assert meta.value == "Sensor observations"
        assert meta.type == SDS_STREAM


class TestIdempotency:
    async def test_second_run_changes_nothing(
        self, bootstrap: StreamBootstrap, stream_config: StreamConfig, fragmenter: TimestampFragmenter
    ) -> None:
        await bootstrap.bootstrap(stream_config)
        before = await fragmenter.bucket_storage.list_buckets(STREAM_ID)

        status = await bootstrap.bootstrap(stream_config)

        assert status == BootstrapStatus.ALREADY_INITIALIZED
        assert await fragmenter.bucket_storage.list_buckets(STREAM_ID) == before

    async def test_existing_stream_needs_no_description(
        self, bootstrap: StreamBootstrap, stream_config: StreamConfig
    ) -> None:
        await bootstrap.bootstrap(stream_config)
        without_description = stream_config.model_copy(update={"description": None})

        assert await bootstrap.bootstrap(without_description) == BootstrapStatus.ALREADY_INITIALIZED

    async def test_partial_run_writes_metadata_and_keeps_windows(
        self,
        bootstrap: StreamBootstrap,
        stream_config: StreamConfig,
        fragmenter: TimestampFragmenter,
        metadata_storage: InMemoryStreamMetadataStorage,
    ) -> None:
        # an earlier run created the root and a window, then stopped before the metadata
        storage = fragmenter.bucket_storage
        await storage.insert_bucket(Bucket(bucket_id=ROOT_BUCKET_ID, stream_id=STREAM_ID, leaf=False))
        earlier = Bucket(bucket_id=window_identifier(at(5)), stream_id=STREAM_ID, start=at(5))
        await storage.insert_bucket(earlier)
        before = await storage.list_buckets(STREAM_ID)

        status = await bootstrap.bootstrap(stream_config)

        assert status == BootstrapStatus.CREATED
        meta = await metadata_storage.find_stream_meta(STREAM_ID)
        assert meta is not None
        assert meta.value == "Sensor observations"
        assert await storage.list_buckets(STREAM_ID) == before
        assert await storage.find_bucket(STREAM_ID, window_identifier(T0)) is None
        assert await bootstrap.bootstrap(stream_config) == BootstrapStatus.ALREADY_INITIALIZED


class TestConfigurationErrors:
    async def test_missing_description_on_first_run(
        self, bootstrap: StreamBootstrap, fragmenter: TimestampFragmenter
    ) -> None:
        with pytest.raises(ConfigurationError):
            await bootstrap.bootstrap(StreamConfig(stream_id=STREAM_ID, start=T0))

        assert await fragmenter.bucket_storage.list_buckets(STREAM_ID) == []

    async def test_missing_timestamp_path_writes_nothing(
        self,
        fragmenter: TimestampFragmenter,
        metadata_storage: InMemoryStreamMetadataStorage,
        stream_config: StreamConfig,
    ) -> None:
        no_path = TimestampFragmenter(
            stream_id=STREAM_ID,
            config=FragmentationConfig(page_size=2),
            bucket_storage=fragmenter.bucket_storage,
            member_storage=fragmenter.member_storage,
            timestamp_extractor=fragmenter.timestamp_extractor,
        )

        with pytest.raises(ConfigurationError):
            await StreamBootstrap(no_path, metadata_storage).bootstrap(stream_config)

        assert await metadata_storage.find_stream_meta(STREAM_ID) is None
        assert await fragmenter.bucket_storage.list_buckets(STREAM_ID) == []

    async def test_stream_mismatch(self, bootstrap: StreamBootstrap) -> None:
        other = StreamConfig(stream_id="https://example.org/streams/other", description="x", start=T0)

        with pytest.raises(ConfigurationError):
            await bootstrap.bootstrap(other)
