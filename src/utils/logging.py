"""Structured logging for render runs.

Every record emitted while a script is being rendered carries the project
(the script's topic slug) and, inside ``scene_context``, the scene id, so a
multi-minute run with interleaved provider polls can be followed per scene.
Console output uses rich tracebacks; ``LOG_JSON=true`` switches to one JSON
object per line.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

import structlog

current_project_id: ContextVar[str | None] = ContextVar("current_project_id", default=None)
current_scene_id: ContextVar[str | None] = ContextVar("current_scene_id", default=None)

# Provider SDKs and transports log every request at INFO
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "google_genai",
    "google_genai.models",
    "botocore",
    "boto3",
    "s3transfer",
    "urllib3.connectionpool",
)


def add_render_context(_logger, _method_name, event_dict):
    """Structlog processor tagging events with the project and scene being rendered."""
    project_id = current_project_id.get()
    if project_id:
        event_dict["project_id"] = project_id
    scene_id = current_scene_id.get()
    if scene_id:
        event_dict["scene_id"] = scene_id
    return event_dict


def _level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    return level


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route stdlib and structlog records through one structlog formatter.

    Modules keep using ``logging.getLogger(__name__)``; their records pick up
    the render context through ``foreign_pre_chain``.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit JSON lines instead of colored console output

    Raises:
        ValueError: If the level name is unknown
    """
    level = _level(log_level)
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_render_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.rich_traceback,
        )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(level, logging.WARNING))


def set_project_context(project_id: str) -> None:
    """Tag subsequent log records with the project being rendered."""
    current_project_id.set(project_id)


@contextmanager
def scene_context(scene_id: str) -> Iterator[None]:
    """Tag log records emitted inside the block with ``scene_id``.

    The previous scene (if any) is restored on exit, so nested renders
    report the innermost scene.
    """
    token = current_scene_id.set(scene_id)
    try:
        yield
    finally:
        current_scene_id.reset(token)


def clear_project_context() -> None:
    """Drop the project and scene tags at the end of a run."""
    current_project_id.set(None)
    current_scene_id.set(None)
