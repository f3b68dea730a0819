# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge. Terminal: ConsoleRenderer, pipelines: JSONRenderer.

Leaf module: no pageblocks imports. Safe to call early in startup.
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
from collections.abc import Iterator

import structlog

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def env_defaults() -> tuple[bool, str]:
    """Read (json_output, level) defaults from PAGEBLOCKS_LOG_JSON / PAGEBLOCKS_LOG_LEVEL."""
    json_output = os.environ.get("PAGEBLOCKS_LOG_JSON", "").strip().lower() in _TRUTHY
    level = os.environ.get("PAGEBLOCKS_LOG_LEVEL", "").strip() or "INFO"
    return json_output, level


def configure(*, json_output: bool = False, level: str = "INFO") -> None:
    """Configure structlog with stdlib bridge.

    Args:
        json_output: True for JSON lines (machine consumers), False for human-readable.
        level: Root logger level (default INFO).
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


@contextlib.contextmanager
def bound_context(**values: object) -> Iterator[None]:
    """Bind structlog contextvars (e.g. source document) for one extraction run."""
    tokens = structlog.contextvars.bind_contextvars(**values)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)
