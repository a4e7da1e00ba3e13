"""Claude Code UserPromptSubmit hook: non-blocking secret advisory.

Always exits 0. If the prompt looks like it contains a credential, a generic
advisory is printed to stderr; the prompt text itself is never echoed or logged.

Intended to be registered in .claude/settings.json:
  {"hooks": {"UserPromptSubmit": [{"hooks": [{"type": "command",
    "command": "python -m safegate.hooks.prompt_submit"}]}]}}
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

from safegate.hooks import EXIT_ALLOW, load_hook_settings, read_hook_input

logger = logging.getLogger(__name__)


def run(
    hook_input: dict[str, Any] | None,
    settings=None,
    *,
    output: IO[str] | None = None,
    store=None,
) -> int:
    from safegate.audit import AuditLogger, dispatch_detached
    from safegate.confirmation import ClosedChannel
    from safegate.gate import build_gate
    from safegate.models import AuditEntry, AuditEvent, Decision, PatternDomain

    if not hook_input:
        return EXIT_ALLOW

    prompt = hook_input.get("prompt", "") or ""
    if not isinstance(prompt, str):
        return EXIT_ALLOW
    if settings is None:
        settings, _ = load_hook_settings()

    # The advisory path never reads from a channel.
    gate = build_gate(settings, store=store, channel=ClosedChannel(), output=output)
    advised = bool(prompt) and gate.warn_if_secret(prompt)

    if settings.audit_enabled:
        entry = AuditEntry(
            event=AuditEvent.PROMPT_SUBMIT,
            decision=Decision.ALLOW,
            domain=PatternDomain.SECRET,
            prompt_length=len(prompt),
            secret_advisory=advised,
        )
        dispatch_detached(AuditLogger(settings.audit_path.expanduser()).record, entry)
    return EXIT_ALLOW


def main() -> None:
    from safegate.audit import wait_for_detached
    from safegate.logging_config import bind_hook_context, configure_logging

    settings, config_error = load_hook_settings()
    configure_logging(settings.log_level, settings.json_logs)
    if config_error is not None:
        logger.warning("invalid settings, using defaults: %s", config_error.message)
    bind_hook_context("UserPromptSubmit")

    try:
        run(read_hook_input(), settings)
    except Exception:
        # Advisory only: a failure here never holds up the prompt.
        logger.exception("secret scan failed")
    wait_for_detached(settings.audit_grace_seconds)
    sys.exit(EXIT_ALLOW)


if __name__ == "__main__":
    main()
