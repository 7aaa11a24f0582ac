"""Configuration for streams, fragmentation and storage.

Configuration is explicit and validated once, when the models are built.
`load_config()` reads a TOML file, looked up in order:

  1. The path passed to `load_config`
  2. Path in the STREAMFRAG_CONFIG env var (if set)
  3. streamfrag.toml in the current working directory

If no file is found, built-in defaults are used. Example file::

    [stream]
    id = "https://example.org/streams/sensors"
    description = "Sensor observations"
    start = "2022-08-07T08:08:21Z"

    [fragmentation]
    page_size = 50
    timestamp_path = "http://www.w3.org/ns/sosa/resultTime"
    split_member_placement = "new_bucket"

    [storage]
    db_path = "streamfrag.db"
"""

from __future__ import annotations

import os
import tomllib
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from streamfrag.errors import ConfigurationError
from streamfrag.instant import require_aware

SOSA_RESULT_TIME = "http://www.w3.org/ns/sosa/resultTime"
DEFAULT_STREAM_ID = "http://localhost/stream"
DEFAULT_DB_PATH = "streamfrag.db"
CONFIG_ENV_VAR = "STREAMFRAG_CONFIG"
CONFIG_FILENAME = "streamfrag.toml"


class SplitMemberPlacement(str, Enum):
    """What happens to the member whose arrival triggers a split."""

    NEW_BUCKET = "new_bucket"
    """The member is stored and becomes the first member of the new bucket."""

    DISCARD = "discard"
    """The member only sets the boundary and is not stored (legacy behaviour)."""


class FragmentationConfig(BaseModel, frozen=True):
    """Settings the fragmenter carries across calls.

    `page_size` of None means buckets are never split. `timestamp_path` may be
    left unset for streams that never split; the first operation that needs
    it raises `ConfigurationError` before writing anything.
    """

    page_size: int | None = Field(
        default=None,
        ge=1,
        description="Maximum number of members per bucket; None for unbounded.",
    )
    timestamp_path: str | None = Field(
        default=None,
        min_length=1,
        description="Path of the member value used as ordering key.",
    )
    split_member_placement: SplitMemberPlacement = SplitMemberPlacement.NEW_BUCKET

    def require_timestamp_path(self) -> str:
        if not self.timestamp_path:
            raise ConfigurationError("timestamp_path was not configured")
        return self.timestamp_path


class StreamConfig(BaseModel, frozen=True):
    """Identity and bootstrap settings of one stream."""

    stream_id: str = Field(default=DEFAULT_STREAM_ID, min_length=1)
    description: str | None = Field(
        default=None,
        description="Stream metadata; required the first time the stream is bootstrapped.",
    )
    start: datetime = Field(description="Start instant of the initial window.")

    @field_validator("start")
    @classmethod
    def start_must_be_timezone_aware(cls, value: datetime) -> datetime:
        return require_aware(value)


class StorageConfig(BaseModel, frozen=True):
    db_path: str = DEFAULT_DB_PATH


class StreamfragConfig(BaseModel, frozen=True):
    stream: StreamConfig | None = None
    fragmentation: FragmentationConfig = FragmentationConfig()
    storage: StorageConfig = StorageConfig()


def _default_config_paths() -> list[Path]:
    """Return paths to check for streamfrag.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get(CONFIG_ENV_VAR):
        paths.append(Path(os.environ[CONFIG_ENV_VAR]))
    paths.append(Path.cwd() / CONFIG_FILENAME)
    return paths


def _stream_section(data: dict[str, Any]) -> dict[str, Any]:
    # the TOML key is "id"; the model field is stream_id
    section = dict(data)
    if "id" in section:
        section["stream_id"] = section.pop("id")
    return section


def parse_config(data: dict[str, Any]) -> StreamfragConfig:
    """Build a StreamfragConfig from an already-parsed TOML document."""
    raw: dict[str, Any] = {}
    if "stream" in data:
        raw["stream"] = _stream_section(data["stream"])
    if "fragmentation" in data:
        raw["fragmentation"] = data["fragmentation"]
    if "storage" in data:
        raw["storage"] = data["storage"]
    try:
        return StreamfragConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid streamfrag configuration: {e}") from e


def load_config(path: str | Path | None = None) -> StreamfragConfig:
    """Load configuration from TOML.

    Returns:
        The parsed configuration, or defaults if no config file exists.

    Raises:
        ConfigurationError: if an explicitly given file is missing, or a file
            cannot be parsed or fails validation.
    """
    if path is not None:
        candidates = [Path(path)]
        if not candidates[0].is_file():
            raise ConfigurationError(f"Config file not found: {path}")
    else:
        candidates = _default_config_paths()

    for candidate in candidates:
        if not candidate.is_file():
            continue
        try:
            with open(candidate, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(f"Could not read config file {candidate}: {e}") from e
        return parse_config(data)
    return StreamfragConfig()
