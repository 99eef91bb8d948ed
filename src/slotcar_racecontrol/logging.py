"""Logging setup shared by the race control pipeline and the CLI.

Race events, speech requests and hardware command failures are logged
through named loggers obtained from `get_logger`. A single handler is
installed on the root logger; the NATS client is kept at WARNING unless
the pipeline itself runs at DEBUG.

Environment variables:
  LOG_LEVEL  - level name or number (default INFO)
  LOG_FORMAT - format string for the race control handler
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

_HANDLER: Optional[logging.Handler] = None
_DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_CHATTY_LOGGERS = ("nats",)


def resolve_level(level: Union[str, int, None]) -> int:
    """Map a level name or number to a logging level; unknown names mean INFO."""
    if level is None or level == "":
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    text = str(level).strip()
    if text.isdigit():
        return int(text)
    value = logging.getLevelName(text.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(
    level: Union[str, int, None] = None,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """Install the race control handler once; later calls adjust it.

    A repeated call changes the level, and the format or stream when
    given explicitly. Handlers installed by other runners are replaced
    on the first call.
    """
    global _HANDLER
    root = logging.getLogger()
    numeric = resolve_level(level)

    if _HANDLER is None:
        for h in list(root.handlers):
            root.removeHandler(h)
        _HANDLER = logging.StreamHandler(stream or sys.stderr)
        _HANDLER.setFormatter(logging.Formatter(fmt or os.environ.get("LOG_FORMAT", _DEFAULT_FORMAT)))
        root.addHandler(_HANDLER)
    else:
        if fmt:
            _HANDLER.setFormatter(logging.Formatter(fmt))
        if stream is not None and isinstance(_HANDLER, logging.StreamHandler):
            _HANDLER.setStream(stream)

    root.setLevel(numeric)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(numeric if numeric <= logging.DEBUG else logging.WARNING)
    return _HANDLER


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if _HANDLER is None:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
