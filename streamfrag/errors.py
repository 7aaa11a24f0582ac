"""Exception hierarchy for stream fragmentation.

The engine performs no local recovery: every error aborts the operation in
progress and reaches the caller unchanged. Backend failures are re-raised as
`StoreError` with the backend exception chained as ``__cause__``.
"""


class FragmentationError(Exception):
    """Base class for all errors raised by streamfrag."""


class ConfigurationError(FragmentationError):
    """Required configuration is missing or invalid.

    Raised for an unset timestamp path at first use, a missing stream
    description on first bootstrap, or an unreadable config file.
    """


class NotFoundError(FragmentationError):
    """A referenced bucket or stream does not exist."""


class ExtractionError(FragmentationError):
    """No timestamp could be derived from a member payload."""


class InvalidWindowError(FragmentationError):
    """A window lacks a field the operation needs (e.g. a start instant)."""


class OutOfOrderError(FragmentationError):
    """A split instant does not lie after the start of the current bucket.

    Buckets are ordered by their start instant, so a split at or before the
    current start would make the new bucket unreachable as the most recent one.
    """


class StoreError(FragmentationError):
    """The backing store failed."""


class DuplicateBucketError(StoreError):
    """A bucket with the same (stream, identifier) already exists."""
