"""Claude Code hook entry points and the decision-to-exit-status translation."""

from __future__ import annotations

import json
import sys
from typing import IO, Any

from safegate.models import Decision

EXIT_ALLOW = 0
# Claude Code treats exit status 2 from a PreToolUse hook as "block".
EXIT_BLOCK = 2

BASH_TOOLS = frozenset({"Bash"})
FILE_WRITE_TOOLS = frozenset({"Write", "Edit", "MultiEdit", "NotebookEdit"})


def exit_status(decision: Decision) -> int:
    return EXIT_ALLOW if decision == Decision.ALLOW else EXIT_BLOCK


def read_hook_input(stream: IO[str] | None = None) -> dict[str, Any] | None:
    """Read the JSON hook payload. Returns None for empty or unparseable input."""
    raw = (stream or sys.stdin).read()
    if not raw.strip():
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def is_gated_tool(tool_name: Any) -> bool:
    return isinstance(tool_name, str) and (tool_name in BASH_TOOLS or tool_name in FILE_WRITE_TOOLS)


def load_hook_settings():
    """Settings for a hook process, plus the configuration error if there was one.

    A broken settings file or environment falls back to the built-in defaults so
    the gate keeps working.
    """
    from safegate.config import default_settings, load_settings
    from safegate.errors import ConfigurationError

    try:
        return load_settings(), None
    except ConfigurationError as exc:
        return default_settings(), exc
