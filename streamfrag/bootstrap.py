"""One-time initialisation of a stream.

Bootstrap writes the stream metadata, the root bucket and the first window,
linked from the root with a ``>=`` relation at the configured start instant.
Running it again for an initialised stream changes nothing.
"""

from enum import Enum

from streamfrag.bucket import Bucket, Window
from streamfrag.config import StreamConfig
from streamfrag.errors import ConfigurationError
from streamfrag.fragmenter import TimestampFragmenter
from streamfrag.instant import to_iso, truncate_millis, window_identifier
from streamfrag.logging import setup_logging
from streamfrag.relation import RelationType
from streamfrag.storage.interfaces import StreamMetadataStorageInterface


class BootstrapStatus(str, Enum):
    """Outcome of `StreamBootstrap.bootstrap`."""

    CREATED = "created"
    """Metadata, root and first window were written."""

    ALREADY_INITIALIZED = "already_initialized"
    """Stream metadata existed; nothing was written."""


class StreamBootstrap:
    """Creates the root index and first window of a stream."""

    def __init__(self, fragmenter: TimestampFragmenter, metadata_storage: StreamMetadataStorageInterface):
        self.fragmenter = fragmenter
        self.metadata_storage = metadata_storage
        self.logger = setup_logging()

    async def bootstrap(self, stream: StreamConfig) -> BootstrapStatus:
        """Initialise `stream` unless its metadata already exists.

        Raises:
            ConfigurationError: if the stream config names another stream than
                the fragmenter, if the description is missing on first run,
                or if no timestamp path is configured.
        """
        if stream.stream_id != self.fragmenter.stream_id:
            raise ConfigurationError(
                f"Stream config is for {stream.stream_id!r} but the fragmenter serves {self.fragmenter.stream_id!r}"
            )

        if await self.metadata_storage.find_stream_meta(stream.stream_id) is not None:
            self.logger.warning(
                {"message": "Stream already initialised, skipping bootstrap", "stream_id": stream.stream_id},
                pprint=True,
            )
            return BootstrapStatus.ALREADY_INITIALIZED

        if not stream.description:
            raise ConfigurationError(f"No description given for stream {stream.stream_id!r}; cannot create its metadata")
        # fail before writing if the root link cannot be made
        self.fragmenter.config.require_timestamp_path()

        await self.metadata_storage.insert_stream_meta(stream.stream_id, stream.description)

        bucket_storage = self.fragmenter.bucket_storage
        if await bucket_storage.find_bucket(stream.stream_id, self.fragmenter.root) is not None:
            self.logger.warning(
                {"message": "Root bucket already present, keeping existing windows", "stream_id": stream.stream_id},
                pprint=True,
            )
            return BootstrapStatus.CREATED

        await bucket_storage.insert_bucket(Bucket(bucket_id=self.fragmenter.root, stream_id=stream.stream_id, leaf=False))

        start = truncate_millis(stream.start)
        first_window = Window(identifier=window_identifier(start), start=start)
        await self.fragmenter.create_window(first_window)
        await self.fragmenter.link_from_root(first_window, RelationType.GTE)

        self.logger.info(
            {
                "message": "Bootstrapped stream",
                "stream_id": stream.stream_id,
                "first_window": first_window.identifier,
                "start": to_iso(start),
            },
            pprint=True,
        )
        return BootstrapStatus.CREATED
