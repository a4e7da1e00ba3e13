"""safegate CLI: check commands and writes, scan for secrets, inspect patterns and audit."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime

from safegate.models import AuditEvent, PatternDomain


def _settings(args: argparse.Namespace):
    from safegate.config import load_settings
    from safegate.errors import ConfigurationError

    overrides = {}
    if getattr(args, "timeout", None) is not None:
        overrides["confirmation_timeout"] = args.timeout
    if getattr(args, "time_context", None) is not None:
        overrides["time_context"] = args.time_context
    try:
        return load_settings(**overrides)
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)


def _channel_for_cli(settings):
    """Interactive runs answer on the terminal; piped runs answer on stdin."""
    from safegate.confirmation import StreamChannel, build_terminal_channel

    if sys.stdin.isatty():
        return build_terminal_channel(settings.confirmation_device)
    return StreamChannel(sys.stdin)


def cmd_check_bash(args: argparse.Namespace) -> None:
    from safegate.gate import build_gate
    from safegate.hooks import exit_status
    from safegate.temporal import resolve_time_context

    settings = _settings(args)
    gate = build_gate(settings, channel=_channel_for_cli(settings))
    outcome = gate.confirm_bash_operation(args.command_text, resolve_time_context(settings))
    if outcome.needs_confirmation and not outcome.allowed:
        print("✗ Operation cancelled.", file=sys.stderr)
    sys.exit(exit_status(outcome.decision))


def cmd_check_write(args: argparse.Namespace) -> None:
    from safegate.gate import build_gate
    from safegate.hooks import exit_status
    from safegate.temporal import resolve_time_context

    settings = _settings(args)
    gate = build_gate(settings, channel=_channel_for_cli(settings))
    outcome = gate.confirm_file_write(args.path, resolve_time_context(settings))
    if outcome.needs_confirmation and not outcome.allowed:
        print("✗ Write operation cancelled.", file=sys.stderr)
    sys.exit(exit_status(outcome.decision))


def cmd_scan_secret(args: argparse.Namespace) -> None:
    from safegate.confirmation import ClosedChannel
    from safegate.gate import build_gate

    settings = _settings(args)
    text = args.text if args.text is not None else sys.stdin.read()
    gate = build_gate(settings, channel=ClosedChannel())
    gate.warn_if_secret(text)


def cmd_patterns(args: argparse.Namespace) -> None:
    from safegate.classifier import Classifier
    from safegate.pattern_store import load_pattern_store

    settings = _settings(args)
    classifier = Classifier(load_pattern_store(settings.config_dir.expanduser()))
    domains = [PatternDomain(args.domain)] if args.domain else list(PatternDomain)

    for domain in domains:
        patterns = classifier.store.domain(domain)
        source = str(patterns.source) if patterns.config_loaded else "built-in fallback"
        print(f"{domain} ({source})")
        active = {c.key for c in classifier.categories(domain)}
        for category in patterns.categories:
            marker = " " if category.key in active else "-"
            print(f" {marker} {category.key} [{category.severity}] {', '.join(category.patterns)}")
        print()


def cmd_audit(args: argparse.Namespace) -> None:
    from safegate.audit import AuditLogger

    settings = _settings(args)
    try:
        since = datetime.fromisoformat(args.since) if args.since else None
    except ValueError:
        print(f"Error: --since must be an ISO timestamp, got {args.since!r}", file=sys.stderr)
        sys.exit(1)

    audit = AuditLogger(settings.audit_path.expanduser())
    entries = audit.entries(since=since, event=args.event)

    if not entries:
        print("No audit entries found.")
        return

    for entry in entries:
        print(entry.model_dump_json(exclude_none=True))


def cmd_hook(args: argparse.Namespace) -> None:
    if args.event == "pre-tool-use":
        from safegate.hooks.pre_tool_call import main as hook_main
    else:
        from safegate.hooks.prompt_submit import main as hook_main
    hook_main()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="safegate",
        description="Confirm destructive shell commands and critical file writes before they run",
    )
    sub = parser.add_subparsers(dest="command")

    # check-bash
    p_bash = sub.add_parser("check-bash", help="Confirm a shell command if it is dangerous")
    p_bash.add_argument("command_text", metavar="COMMAND", help="The command line to evaluate")
    p_bash.add_argument("--time-context", help="Temporal tag (long_session, late_night, very_early)")
    p_bash.add_argument("--timeout", type=float, help="Seconds to wait for confirmation")

    # check-write
    p_write = sub.add_parser("check-write", help="Confirm a file write if the path is critical")
    p_write.add_argument("path", help="The file path to evaluate")
    p_write.add_argument("--time-context", help="Temporal tag (long_session, late_night, very_early)")
    p_write.add_argument("--timeout", type=float, help="Seconds to wait for confirmation")

    # scan-secret
    p_secret = sub.add_parser("scan-secret", help="Show an advisory if text looks like it holds a secret")
    p_secret.add_argument("text", nargs="?", help="Text to scan (default: read stdin)")

    # patterns
    p_patterns = sub.add_parser("patterns", help="List active pattern categories and their source")
    p_patterns.add_argument("--domain", choices=[d.value for d in PatternDomain])

    # audit
    p_audit = sub.add_parser("audit", help="Query audit log")
    p_audit.add_argument("--since", help="ISO timestamp to filter from")
    p_audit.add_argument("--event", choices=[e.value for e in AuditEvent], help="Event to filter")

    # hook
    p_hook = sub.add_parser("hook", help="Run as a Claude Code hook (payload on stdin)")
    p_hook.add_argument("event", choices=["pre-tool-use", "prompt-submit"])

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "check-bash": cmd_check_bash,
        "check-write": cmd_check_write,
        "scan-secret": cmd_scan_secret,
        "patterns": cmd_patterns,
        "audit": cmd_audit,
        "hook": cmd_hook,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
