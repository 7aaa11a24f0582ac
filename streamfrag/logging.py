"""Logging helpers for the fragmentation engine.

`PprintLogger` wraps a standard `logging.Logger` so that structured messages
(dicts, pydantic models such as buckets and relations) are rendered readably
instead of as one long repr.
"""

import inspect
import logging
from pprint import pformat
from typing import Any

from pydantic import BaseModel

LOG_FORMAT = "%(asctime)s - %(name)s - %(pathname)s:%(lineno)d - %(levelname)s - %(message)s"


class PprintLogger:
    """A logger wrapper that adds pprint support to standard logging methods."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format_message(self, msg: Any, pprint: bool = True) -> str:
        """Format a message, optionally using pprint.

        Pydantic models are dumped with model_dump_json(); dicts that carry
        models are dumped through model_dump(mode="json") first so buckets and
        relations show their fields instead of their repr.
        """
        if not pprint:
            return str(msg)

        if isinstance(msg, BaseModel):
            return msg.model_dump_json(indent=2)

        if isinstance(msg, dict):
            msg = {key: _jsonable(value) for key, value in msg.items()}

        return pformat(msg, width=120, depth=None)

    def _log(self, level: int, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(level, self._format_message(msg, pprint=pprint), *args, stacklevel=3, **kwargs)

    def debug(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, pprint=pprint, **kwargs)

    def info(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, pprint=pprint, **kwargs)

    def warning(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, pprint=pprint, **kwargs)

    def error(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, pprint=pprint, **kwargs)

    def critical(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.CRITICAL, msg, *args, pprint=pprint, **kwargs)

    def exception(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, pprint=pprint, **kwargs)

    def __getattr__(self, name: str) -> Any:
        """Delegate any other attributes to the underlying logger."""
        return getattr(self._logger, name)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], BaseModel):
        return [item.model_dump(mode="json") for item in value]
    return value


def setup_logging(name: str | None = None, level: int = logging.INFO) -> PprintLogger:
    """Set up a logger and return a PprintLogger around it.

    When no name is given the calling module's ``__name__`` is used, so
    ``setup_logging()`` at module level behaves like ``logging.getLogger(__name__)``.
    A stream handler is attached only once per logger.
    """
    if name is None:
        frame = inspect.currentframe().f_back  # type: ignore[union-attr]
        name = frame.f_globals.get("__name__", "streamfrag")  # type: ignore[union-attr]
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return PprintLogger(logger)
