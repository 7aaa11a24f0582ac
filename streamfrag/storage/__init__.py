"""Storage interfaces and implementations for stream fragmentation."""

from streamfrag.storage.interfaces import (
    BucketStorageInterface,
    MemberStorageInterface,
    StreamMetadata,
    StreamMetadataStorageInterface,
)
from streamfrag.storage.memory import (
    InMemoryBucketStorage,
    InMemoryMemberStorage,
    InMemoryStreamMetadataStorage,
)

__all__ = [
    "BucketStorageInterface",
    "MemberStorageInterface",
    "StreamMetadataStorageInterface",
    "StreamMetadata",
    "InMemoryBucketStorage",
    "InMemoryMemberStorage",
    "InMemoryStreamMetadataStorage",
]
