"""Claude Code PreToolUse hook: confirms dangerous commands and critical writes.

Reads the tool invocation from stdin (JSON), runs the gate, and:
- Exits 0 if the tool may run
- Exits 2 (with a cancellation note on stderr) if the operator declined

Intended to be registered in .claude/settings.json:
  {"hooks": {"PreToolUse": [{"matcher": "Bash|Write|Edit|MultiEdit|NotebookEdit",
    "hooks": [{"type": "command", "command": "python -m safegate.hooks.pre_tool_call"}]}]}}
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

from safegate.hooks import (
    BASH_TOOLS,
    EXIT_ALLOW,
    EXIT_BLOCK,
    exit_status,
    is_gated_tool,
    load_hook_settings,
    read_hook_input,
)

logger = logging.getLogger(__name__)


def _target_of(tool_name: str, tool_input: dict[str, Any]) -> str:
    if tool_name in BASH_TOOLS:
        return tool_input.get("command", "") or ""
    return (
        tool_input.get("file_path", "")
        or tool_input.get("notebook_path", "")
        or tool_input.get("path", "")
        or ""
    )


def run(
    hook_input: dict[str, Any] | None,
    settings=None,
    *,
    channel=None,
    output: IO[str] | None = None,
    store=None,
) -> int:
    """Evaluate one tool invocation and return the process exit status."""
    from safegate.audit import AuditLogger, dispatch_detached
    from safegate.gate import build_gate
    from safegate.models import AuditEntry, AuditEvent, PatternDomain
    from safegate.privacy import sanitize_command, sanitize_path
    from safegate.temporal import resolve_time_context

    if not hook_input:
        return EXIT_ALLOW  # No input, allow

    tool_name = hook_input.get("tool_name", "") or ""
    tool_input = hook_input.get("tool_input", {})
    if not isinstance(tool_input, dict):
        tool_input = {}
    if not is_gated_tool(tool_name):
        return EXIT_ALLOW

    target = _target_of(tool_name, tool_input)
    if not target:
        return EXIT_ALLOW

    if settings is None:
        settings, _ = load_hook_settings()
    gate = build_gate(settings, store=store, channel=channel, output=output)
    time_context = resolve_time_context(settings)

    if tool_name in BASH_TOOLS:
        domain = PatternDomain.DANGEROUS_OPERATION
        outcome = gate.confirm_bash_operation(target, time_context)
        summary = sanitize_command(target)
        cancelled = "✗ Operation cancelled."
    else:
        domain = PatternDomain.CRITICAL_PATH
        outcome = gate.confirm_file_write(target, time_context)
        summary = sanitize_path(target)
        cancelled = "✗ Write operation cancelled."

    if settings.audit_enabled:
        entry = AuditEntry(
            event=AuditEvent.PRE_TOOL_USE,
            decision=outcome.decision,
            tool_name=tool_name,
            target=summary,
            domain=domain,
            category=gate.classifier.classify(domain, target).key,
            needs_confirmation=outcome.needs_confirmation,
            time_context=time_context,
        )
        dispatch_detached(AuditLogger(settings.audit_path.expanduser()).record, entry)

    if outcome.needs_confirmation and not outcome.allowed:
        logger.info("operator declined %s (%s)", tool_name, summary)
        stream = output if output is not None else sys.stderr
        print(cancelled, file=stream)
    return exit_status(outcome.decision)


def main() -> None:
    from safegate.audit import wait_for_detached
    from safegate.logging_config import bind_hook_context, configure_logging

    settings, config_error = load_hook_settings()
    configure_logging(settings.log_level, settings.json_logs)
    if config_error is not None:
        logger.warning("invalid settings, using defaults: %s", config_error.message)

    hook_input = read_hook_input()
    tool_name = (hook_input or {}).get("tool_name")
    bind_hook_context("PreToolUse", tool_name)

    try:
        status = run(hook_input, settings)
    except Exception:
        # An evaluation that cannot finish must not let the tool run.
        logger.exception("gate evaluation failed")
        status = EXIT_BLOCK if is_gated_tool(tool_name) else EXIT_ALLOW
    wait_for_detached(settings.audit_grace_seconds)
    sys.exit(status)


if __name__ == "__main__":
    main()
