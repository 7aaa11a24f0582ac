"""
Stream fragmentation - bounded buckets for append-only member streams.

Members of a stream are grouped into buckets of at most `page_size` members.
Every bucket is reachable from a single root bucket through ``>=`` / ``<``
relations on a timestamp path, so a consumer can fetch any time slice of the
stream without scanning it whole.

    from streamfrag import (
        FragmentationConfig,
        StreamBootstrap,
        StreamConfig,
        TimestampFragmenter,
    )
"""

from streamfrag.bootstrap import BootstrapStatus, StreamBootstrap
from streamfrag.bucket import ROOT_BUCKET_ID, Bucket, Window
from streamfrag.config import (
    SOSA_RESULT_TIME,
    FragmentationConfig,
    SplitMemberPlacement,
    StorageConfig,
    StreamConfig,
    StreamfragConfig,
    load_config,
)
from streamfrag.errors import (
    ConfigurationError,
    DuplicateBucketError,
    ExtractionError,
    FragmentationError,
    InvalidWindowError,
    NotFoundError,
    OutOfOrderError,
    StoreError,
)
from streamfrag.fragmenter import AppendResult, PublishResult, TimestampFragmenter
from streamfrag.member import Member
from streamfrag.relation import Relation, RelationType
from streamfrag.timestamp import PayloadTimestampExtractor, TimestampExtractorInterface

__all__ = [
    "AppendResult",
    "BootstrapStatus",
    "Bucket",
    "ConfigurationError",
    "DuplicateBucketError",
    "ExtractionError",
    "FragmentationConfig",
    "FragmentationError",
    "InvalidWindowError",
    "Member",
    "NotFoundError",
    "OutOfOrderError",
    "PayloadTimestampExtractor",
    "PublishResult",
    "ROOT_BUCKET_ID",
    "Relation",
    "RelationType",
    "SOSA_RESULT_TIME",
    "SplitMemberPlacement",
    "StorageConfig",
    "StoreError",
    "StreamBootstrap",
    "StreamConfig",
    "StreamfragConfig",
    "TimestampExtractorInterface",
    "TimestampFragmenter",
    "Window",
    "load_config",
]

__version__ = "0.1.0"
