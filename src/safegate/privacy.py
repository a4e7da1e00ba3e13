"""Reduce commands and paths to summaries that are safe to keep in the audit log."""

from __future__ import annotations

import os
import shlex
from pathlib import Path

REDACTED = "[PRIVATE]"

SENSITIVE_PATH_KEYWORDS = (".ssh", "secret", "credential", "token", "password", ".env", "key")

# Programs whose first argument is a subcommand worth keeping (git push, npm publish).
SUBCOMMAND_PROGRAMS = frozenset({"git", "npm", "cargo", "docker", "kubectl", "pip", "go"})

_PREFIX_WORDS = frozenset({"sudo", "env", "nohup", "time", "exec"})


def _is_assignment(word: str) -> bool:
    name, sep, _ = word.partition("=")
    return bool(sep) and name.isidentifier()


def sanitize_command(command: str) -> str:
    """Return the program name (plus subcommand for known tools) without arguments."""
    try:
        words = shlex.split(command)
    except ValueError:
        words = command.split()

    while words and (words[0] in _PREFIX_WORDS or _is_assignment(words[0])):
        words = words[1:]
    if not words:
        return ""

    program = os.path.basename(words[0])
    if program in SUBCOMMAND_PROGRAMS:
        for word in words[1:]:
            if not word.startswith("-"):
                return f"{program} {word}"
    return program


def sanitize_path(path: str, home: str | None = None) -> str:
    """Replace the home directory with ``~`` and hide sensitive paths entirely."""
    if not path:
        return ""
    lowered = path.lower()
    if any(keyword in lowered for keyword in SENSITIVE_PATH_KEYWORDS):
        return REDACTED

    home = home if home is not None else str(Path.home())
    if home and (path == home or path.startswith(home.rstrip("/") + "/")):
        return "~" + path[len(home.rstrip("/")):]
    return path
