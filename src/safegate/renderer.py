"""Plain-text rendering of confirmation warnings and the secret advisory.

Every function here is pure: the same request always renders the same text,
and an unknown category renders a generic warning instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass

from safegate.models import ConfirmationRequest, PatternDomain

RULE = "═" * 59


@dataclass(frozen=True)
class CategoryWarning:
    title: str
    explanation: str
    question: str
    framed: bool = False


CATEGORY_WARNINGS: dict[str, CategoryWarning] = {
    "git_force_push": CategoryWarning(
        title="WARNING: FORCE PUSH DETECTED",
        explanation=(
            "This will rewrite history on the remote repository. "
            "Ensure this is intentional and coordinated with your team."
        ),
        question="Continue with force push?",
        framed=True,
    ),
    "git_hard_reset": CategoryWarning(
        title="DESTRUCTIVE OPERATION: Hard reset",
        explanation="This will discard all uncommitted changes permanently.",
        question="Confirm hard reset?",
    ),
    "filesystem_recursive_delete": CategoryWarning(
        title="DESTRUCTIVE OPERATION: Recursive removal",
        explanation="Files removed this way bypass any trash and cannot be recovered.",
        question="Confirm deletion?",
    ),
    "privilege_escalation": CategoryWarning(
        title="ELEVATED PRIVILEGES REQUESTED",
        explanation="This command runs with administrator rights and can change the whole system.",
        question="Confirm sudo operation?",
    ),
    "package_publish": CategoryWarning(
        title="PACKAGE PUBLISHING",
        explanation="Publishing to a registry is difficult to undo once others can download it.",
        question="Confirm publish?",
    ),
    "database_destructive": CategoryWarning(
        title="DATABASE DESTRUCTIVE OPERATION",
        explanation="Dropped databases and tables lose their data unless a backup exists.",
        question="Confirm database operation?",
    ),
}

CRITICAL_PATH_WARNING = CategoryWarning(
    title="CRITICAL FILE WRITE",
    explanation="This file is in a critical system location.",
    question="Confirm write operation?",
)

GENERIC_WARNING = CategoryWarning(
    title="POTENTIALLY DESTRUCTIVE OPERATION",
    explanation="This operation may make changes that cannot be undone.",
    question="Confirm operation?",
)

TEMPORAL_NOTES: dict[str, str] = {
    "long_session": "You have been working for a long session; fatigue makes mistakes easier, so double-check.",
    "late_night": "It is late at night. Consider waiting until morning for irreversible changes.",
    "very_early": "It is very early in the morning. Make sure you are fully alert before continuing.",
}

SECRET_ADVISORY = (
    "\n"
    "Potential secret detected in prompt\n"
    "   Review prompt before submitting\n"
)


def temporal_note(time_context: str) -> str | None:
    return TEMPORAL_NOTES.get(time_context)


def warning_for(request: ConfirmationRequest) -> CategoryWarning:
    """Pick the warning text for *request*'s category."""
    known = CATEGORY_WARNINGS.get(request.category.key)
    if known is not None and request.domain == PatternDomain.DANGEROUS_OPERATION:
        return known
    if request.domain == PatternDomain.CRITICAL_PATH:
        if request.category.reason:
            return CategoryWarning(
                title=CRITICAL_PATH_WARNING.title,
                explanation=f"{CRITICAL_PATH_WARNING.explanation} ({request.category.reason})",
                question=CRITICAL_PATH_WARNING.question,
            )
        return CRITICAL_PATH_WARNING
    if request.category.reason:
        return CategoryWarning(
            title=GENERIC_WARNING.title,
            explanation=f"{request.category.reason}.",
            question=GENERIC_WARNING.question,
        )
    return GENERIC_WARNING


def render_warning(request: ConfirmationRequest) -> str:
    """Render the warning body shown before the confirmation prompt."""
    warning = warning_for(request)
    label = "Path" if request.domain == PatternDomain.CRITICAL_PATH else "Command"

    lines = [""]
    if warning.framed:
        lines.append(RULE)
    lines.append(warning.title)
    lines.append(f"   {label}: {request.raw_input}")
    lines.append(f"   {warning.explanation}")
    note = temporal_note(request.time_context)
    if note:
        lines.append(f"   {note}")
    if warning.framed:
        lines.append(RULE)
    lines.append("")
    return "\n".join(lines) + "\n"


def render_prompt(request: ConfirmationRequest) -> str:
    question = warning_for(request).question
    if request.required_token == "yes":
        return f"   {question} (yes/NO): "
    return f"   {question} (y/N): "


def render_secret_advisory() -> str:
    """The non-blocking secret advisory. Never includes any of the scanned text."""
    return SECRET_ADVISORY + "\n"
