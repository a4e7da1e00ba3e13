"""Log formatting for hook processes, rendered by structlog on stderr.

stdout belongs to Claude Code, so every record goes to stderr.
"""

import logging
import sys

import structlog

_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def configure_logging(log_level: str = "warning", json_output: bool = False) -> None:
    """Route stdlib ``logging`` records through structlog's formatter.

    Modules keep calling ``logging.getLogger(__name__)``. Context bound with
    :func:`bind_hook_context` is merged into every line.
    """
    if json_output:
        processors = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors = [structlog.dev.ConsoleRenderer(colors=False)]

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *processors],
            foreign_pre_chain=_PRE_CHAIN,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.WARNING))


def bind_hook_context(hook: str, tool_name: str | None = None) -> None:
    """Tag every later log line of this process with the running hook."""
    ctx = {"hook": hook}
    if tool_name:
        ctx["tool_name"] = tool_name
    structlog.contextvars.bind_contextvars(**ctx)
