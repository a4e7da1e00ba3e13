"""Pydantic models and value types for the safety gate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Severity(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"

    @property
    def required_token(self) -> str:
        return "yes" if self is Severity.HIGH else "y"


# Four-level scale used by older pattern documents.
_SEVERITY_ALIASES = {"critical": Severity.HIGH, "low": Severity.MEDIUM}


class PatternDomain(StrEnum):
    DANGEROUS_OPERATION = "dangerous_operation"
    CRITICAL_PATH = "critical_path"
    SECRET = "secret"


class Platform(StrEnum):
    ALL = "all"
    UNIX = "unix"
    LINUX = "linux"
    DARWIN = "darwin"
    WINDOWS = "windows"

    def applies_to(self, sys_platform: str) -> bool:
        """Return True if a category tagged with this platform applies on *sys_platform*."""
        is_windows = sys_platform.startswith(("win", "cygwin"))
        if self is Platform.ALL:
            return True
        if self is Platform.WINDOWS:
            return is_windows
        if self is Platform.UNIX:
            return not is_windows
        return sys_platform.startswith(self.value)


class Decision(StrEnum):
    ALLOW = "allow"
    DENY = "deny"


class PatternCategory(BaseModel):
    """A named bucket of match strings plus metadata."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str = Field(..., min_length=1)
    patterns: tuple[str, ...] = Field(..., min_length=1)
    severity: Severity = Severity.HIGH
    reason: str = ""
    description: str = ""
    platform: Platform | None = None
    services: tuple[str, ...] = ()

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return _SEVERITY_ALIASES.get(value, value)
        return value

    @field_validator("patterns")
    @classmethod
    def _reject_empty_patterns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # An empty pattern is a substring of every input.
        if any(not p for p in value):
            raise ValueError("patterns must be non-empty strings")
        return value

    def applies_to(self, sys_platform: str) -> bool:
        return self.platform is None or self.platform.applies_to(sys_platform)


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    description: str = ""
    version: str = ""
    last_updated: str = ""
    author: str = ""


class PatternDocument(BaseModel):
    """One pattern configuration document (one domain).

    The category mapping is read from ``patterns``, or ``paths`` for
    critical-path documents. Category keys are copied into each category.
    """

    model_config = ConfigDict(extra="ignore")

    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    categories: dict[str, PatternCategory] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _collect_categories(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "categories" in data:
            return data
        mapping = data.get("patterns", data.get("paths"))
        if not isinstance(mapping, dict):
            return data
        categories = {}
        for key, body in mapping.items():
            categories[key] = {**body, "key": key} if isinstance(body, dict) else body
        return {"metadata": data.get("metadata", {}), "categories": categories}


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of testing one input against one pattern domain."""

    domain: PatternDomain
    matched: bool
    key: str | None = None
    category: PatternCategory | None = None

    def __post_init__(self) -> None:
        has_category = self.key is not None and self.category is not None
        if self.matched != has_category:
            raise ValueError("category must be set if and only if matched is true")


@dataclass(frozen=True)
class ConfirmationRequest:
    """What the orchestrator hands to the renderer for one blocking evaluation."""

    raw_input: str
    domain: PatternDomain
    category: PatternCategory
    time_context: str = ""

    @property
    def severity(self) -> Severity:
        # Critical-path writes are treated as equally irreversible.
        if self.domain == PatternDomain.CRITICAL_PATH:
            return Severity.HIGH
        return self.category.severity

    @property
    def required_token(self) -> str:
        return self.severity.required_token


class _OutcomeFields(NamedTuple):
    needs_confirmation: bool
    allowed: bool


class ConfirmationOutcome(_OutcomeFields):
    """``(needs_confirmation, allowed)`` returned to the caller.

    An input that needed no confirmation is always allowed.
    """

    __slots__ = ()

    def __new__(cls, needs_confirmation: bool, allowed: bool) -> ConfirmationOutcome:
        if not needs_confirmation and not allowed:
            raise ValueError("an outcome that needed no confirmation must be allowed")
        return super().__new__(cls, needs_confirmation, allowed)

    @classmethod
    def skipped(cls) -> ConfirmationOutcome:
        return cls(needs_confirmation=False, allowed=True)

    @classmethod
    def resolved(cls, allowed: bool) -> ConfirmationOutcome:
        return cls(needs_confirmation=True, allowed=allowed)

    @property
    def decision(self) -> Decision:
        return Decision.ALLOW if self.allowed else Decision.DENY


class AuditEvent(StrEnum):
    PRE_TOOL_USE = "pre_tool_use"
    PROMPT_SUBMIT = "prompt_submit"


class AuditEntry(BaseModel):
    """One gate decision as stored in the audit log.

    ``target`` is already sanitized; raw commands, paths and prompt text are
    never recorded.
    """

    model_config = ConfigDict(extra="ignore")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event: AuditEvent
    decision: Decision
    tool_name: str = ""
    target: str = ""
    domain: PatternDomain | None = None
    category: str | None = None
    needs_confirmation: bool = False
    time_context: str = ""

    # Prompt submissions only
    prompt_length: int | None = None
    secret_advisory: bool = False

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
