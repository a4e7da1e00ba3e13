"""Loads categorized match patterns, falling back to a built-in set per domain."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from safegate.errors import PatternConfigError
from safegate.models import PatternCategory, PatternDocument, PatternDomain, Platform, Severity

logger = logging.getLogger(__name__)

DOCUMENT_NAMES: dict[PatternDomain, str] = {
    PatternDomain.DANGEROUS_OPERATION: "dangerous-patterns.jsonc",
    PatternDomain.CRITICAL_PATH: "critical-paths.jsonc",
    PatternDomain.SECRET: "secret-patterns.jsonc",
}


def _category(key: str, patterns: list[str], severity: Severity, reason: str, **extra) -> PatternCategory:
    return PatternCategory(key=key, patterns=tuple(patterns), severity=severity, reason=reason, **extra)


# Scan order matters: the first matching category decides the warning text.
FALLBACK_CATEGORIES: dict[PatternDomain, tuple[PatternCategory, ...]] = {
    PatternDomain.DANGEROUS_OPERATION: (
        _category(
            "git_force_push",
            ["git push --force", "git push -f"],
            Severity.HIGH,
            "Rewrites history on the remote repository",
        ),
        _category(
            "git_hard_reset",
            ["git reset --hard"],
            Severity.HIGH,
            "Discards uncommitted changes permanently",
        ),
        _category(
            "filesystem_recursive_delete",
            ["rm -rf", "rm -r"],
            Severity.HIGH,
            "Recursively deletes files without a recycle bin",
        ),
        _category(
            "privilege_escalation",
            ["sudo"],
            Severity.MEDIUM,
            "Runs with elevated privileges",
        ),
        _category(
            "package_publish",
            ["npm publish", "cargo publish"],
            Severity.HIGH,
            "Publishes to a public registry; releases are difficult to retract",
        ),
        _category(
            "database_destructive",
            ["DROP DATABASE", "DROP TABLE"],
            Severity.HIGH,
            "Drops database objects and their data",
        ),
    ),
    PatternDomain.CRITICAL_PATH: (
        _category(
            "critical_system_path",
            ["/etc/", "/boot/"],
            Severity.HIGH,
            "System configuration and boot files",
            platform=Platform.UNIX,
        ),
        _category(
            "auth_credentials",
            ["/.ssh/"],
            Severity.HIGH,
            "SSH keys and authentication material",
        ),
        _category(
            "vcs_config",
            ["/.git/config"],
            Severity.HIGH,
            "Repository configuration, remotes and credentials helpers",
        ),
    ),
    PatternDomain.SECRET: (
        _category("api_key_prefix", ["sk-", "AKIA"], Severity.HIGH, "API key prefixes"),
        _category("github_token", ["ghp_"], Severity.HIGH, "GitHub personal access token"),
        _category("slack_token", ["xox"], Severity.HIGH, "Slack token"),
        _category("private_key", ["BEGIN PRIVATE", "PRIVATE KEY-----"], Severity.HIGH, "PEM private key"),
        _category("jwt", ["eyJ"], Severity.MEDIUM, "JSON Web Token header"),
    ),
}


@dataclass(frozen=True)
class DomainPatterns:
    """Active categories for one domain and where they came from."""

    domain: PatternDomain
    categories: tuple[PatternCategory, ...]
    config_loaded: bool = False
    source: Path | None = None


@dataclass(frozen=True)
class PatternStore:
    """Immutable pattern set for all three domains.

    Built once at startup; a reload means constructing a new store.
    """

    dangerous_operations: DomainPatterns
    critical_paths: DomainPatterns
    secrets: DomainPatterns

    def domain(self, domain: PatternDomain) -> DomainPatterns:
        return {
            PatternDomain.DANGEROUS_OPERATION: self.dangerous_operations,
            PatternDomain.CRITICAL_PATH: self.critical_paths,
            PatternDomain.SECRET: self.secrets,
        }[domain]

    def __iter__(self):
        yield self.dangerous_operations
        yield self.critical_paths
        yield self.secrets

    @classmethod
    def fallback(cls) -> PatternStore:
        return cls(
            dangerous_operations=_fallback(PatternDomain.DANGEROUS_OPERATION),
            critical_paths=_fallback(PatternDomain.CRITICAL_PATH),
            secrets=_fallback(PatternDomain.SECRET),
        )

    @classmethod
    def from_categories(
        cls,
        *,
        dangerous: tuple[PatternCategory, ...] | list[PatternCategory] | None = None,
        critical: tuple[PatternCategory, ...] | list[PatternCategory] | None = None,
        secrets: tuple[PatternCategory, ...] | list[PatternCategory] | None = None,
    ) -> PatternStore:
        """Build a store from in-memory categories; omitted domains use the fallback set."""

        def _domain(domain: PatternDomain, categories) -> DomainPatterns:
            if categories is None:
                return _fallback(domain)
            return DomainPatterns(domain=domain, categories=tuple(categories), config_loaded=True)

        return cls(
            dangerous_operations=_domain(PatternDomain.DANGEROUS_OPERATION, dangerous),
            critical_paths=_domain(PatternDomain.CRITICAL_PATH, critical),
            secrets=_domain(PatternDomain.SECRET, secrets),
        )


def _fallback(domain: PatternDomain) -> DomainPatterns:
    return DomainPatterns(domain=domain, categories=FALLBACK_CATEGORIES[domain])


def strip_jsonc_comments(text: str) -> str:
    """Drop full-line ``//`` comments so the document parses as JSON."""
    return "\n".join(
        line for line in text.splitlines() if not line.lstrip().startswith("//")
    )


def read_pattern_document(path: Path) -> PatternDocument:
    """Read and validate one pattern document. Raises PatternConfigError."""
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PatternConfigError(path, f"cannot read: {exc.strerror or exc}") from exc

    try:
        raw_data = json.loads(strip_jsonc_comments(raw_text))
    except json.JSONDecodeError as exc:
        raise PatternConfigError(path, f"invalid JSON at line {exc.lineno}") from exc

    try:
        return PatternDocument.model_validate(raw_data)
    except ValidationError as exc:
        raise PatternConfigError(path, "schema validation failed", details=exc.errors()) from exc


def load_domain(domain: PatternDomain, path: Path) -> DomainPatterns:
    """Load one domain from *path*, or its fallback set if anything goes wrong."""
    try:
        document = read_pattern_document(path)
    except PatternConfigError as exc:
        logger.debug("pattern config unavailable, using fallback for %s: %s", domain, exc.message)
        return _fallback(domain)

    return DomainPatterns(
        domain=domain,
        categories=tuple(document.categories.values()),
        config_loaded=True,
        source=path,
    )


def load_pattern_store(config_dir: Path | None) -> PatternStore:
    """Load all three domains from *config_dir*; each domain falls back independently."""
    if config_dir is None:
        return PatternStore.fallback()

    loaded = {
        domain: load_domain(domain, config_dir / name)
        for domain, name in DOCUMENT_NAMES.items()
    }
    return PatternStore(
        dangerous_operations=loaded[PatternDomain.DANGEROUS_OPERATION],
        critical_paths=loaded[PatternDomain.CRITICAL_PATH],
        secrets=loaded[PatternDomain.SECRET],
    )
