"""Timestamp extraction from member payloads.

The fragmenter only needs a timestamp when a bucket is full: the incoming
member's instant becomes the boundary between the closed bucket and the new
one. Extraction is an interface so deployments can plug in RDF-aware or
schema-specific extractors.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from streamfrag.errors import ExtractionError
from streamfrag.instant import as_utc, from_epoch_millis

_DATETIME = TypeAdapter(datetime)


class TimestampExtractorInterface(ABC):
    """Derive the ordering instant of a member payload."""

    @abstractmethod
    async def extract(self, payload: Any, path: str) -> datetime:
        """Return the timezone-aware instant found at `path` in `payload`.

        Raises:
            ExtractionError: if the path yields no usable value.
        """


class PayloadTimestampExtractor(TimestampExtractorInterface):
    """Extract instants from mapping or triple-shaped payloads.

    Supported payload shapes:

    - A mapping: the value under key `path`.
    - A sequence of ``(subject, predicate, object)`` triples: the object of
      the first triple whose predicate equals `path`.

    Supported values are datetimes, ISO-8601 strings and integers (epoch
    milliseconds). Values without a timezone are read as UTC.

    Example:
        ```python
        extractor = PayloadTimestampExtractor()
        when = await extractor.extract(
            {"http://www.w3.org/ns/sosa/resultTime": "2022-08-07T08:08:21Z"},
            "http://www.w3.org/ns/sosa/resultTime",
        )
        ```
    """

    async def extract(self, payload: Any, path: str) -> datetime:
        raw = self._find_value(payload, path)
        if raw is None:
            raise ExtractionError(f"No value found at path {path!r}")
        return self._to_instant(raw, path)

    @staticmethod
    def _find_value(payload: Any, path: str) -> Any:
        if isinstance(payload, Mapping):
            return payload.get(path)
        if isinstance(payload, (list, tuple)):
            for triple in payload:
                if isinstance(triple, (list, tuple)) and len(triple) == 3 and triple[1] == path:
                    return triple[2]
        return None

    @staticmethod
    def _to_instant(raw: Any, path: str) -> datetime:
        if isinstance(raw, bool):
            raise ExtractionError(f"Value at path {path!r} is not an instant: {raw!r}")
        if isinstance(raw, int):
            return from_epoch_millis(raw)
        if isinstance(raw, datetime):
            return as_utc(raw)
        if isinstance(raw, str):
            try:
                return as_utc(_DATETIME.validate_python(raw.strip()))
            except ValidationError as e:
                raise ExtractionError(f"Value at path {path!r} is not an ISO-8601 instant: {raw!r}") from e
        raise ExtractionError(f"Value at path {path!r} is not an instant: {raw!r}")
