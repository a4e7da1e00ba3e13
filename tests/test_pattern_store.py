"""Tests for pattern loading and per-domain fallback."""

import json

import pytest
from pydantic import ValidationError

from safegate.errors import PatternConfigError
from safegate.models import PatternCategory, PatternDomain, Platform, Severity
from safegate.pattern_store import (
    FALLBACK_CATEGORIES,
    PatternStore,
    load_domain,
    load_pattern_store,
    read_pattern_document,
    strip_jsonc_comments,
)


class TestFallback:
    def test_every_domain_has_fallback_categories(self):
        for domain in PatternDomain:
            assert FALLBACK_CATEGORIES[domain]
            assert all(c.patterns for c in FALLBACK_CATEGORIES[domain])

    def test_no_config_dir_uses_fallback(self):
        store = load_pattern_store(None)
        assert all(not domain.config_loaded for domain in store)

    def test_missing_files_use_fallback(self, tmp_path):
        store = load_pattern_store(tmp_path / "does-not-exist")
        assert not store.dangerous_operations.config_loaded
        keys = [c.key for c in store.dangerous_operations.categories]
        assert keys[0] == "git_force_push"

    def test_sudo_is_medium_severity(self):
        store = PatternStore.fallback()
        sudo = [c for c in store.dangerous_operations.categories if c.key == "privilege_escalation"]
        assert sudo[0].severity == Severity.MEDIUM


class TestLoading:
    def test_loads_shipped_documents(self, pattern_config_dir):
        store = load_pattern_store(pattern_config_dir)
        for domain in store:
            assert domain.config_loaded is True
            assert domain.source is not None
        keys = [c.key for c in store.critical_paths.categories]
        assert keys == ["critical_system_path", "auth_credentials", "vcs_config", "windows_system_path"]

    def test_critical_severity_reads_as_high(self, pattern_config_dir):
        store = load_pattern_store(pattern_config_dir)
        force_push = store.dangerous_operations.categories[0]
        assert force_push.key == "git_force_push"
        assert force_push.severity == Severity.HIGH

    def test_platform_tag_parsed(self, pattern_config_dir):
        store = load_pattern_store(pattern_config_dir)
        by_key = {c.key: c for c in store.critical_paths.categories}
        assert by_key["windows_system_path"].platform == Platform.WINDOWS
        assert by_key["critical_system_path"].platform == Platform.UNIX

    def test_domains_fall_back_independently(self, pattern_config_dir):
        (pattern_config_dir / "secret-patterns.jsonc").write_text("{ not json", encoding="utf-8")
        (pattern_config_dir / "critical-paths.jsonc").unlink()

        store = load_pattern_store(pattern_config_dir)
        assert store.dangerous_operations.config_loaded is True
        assert store.critical_paths.config_loaded is False
        assert store.secrets.config_loaded is False
        assert store.secrets.categories == FALLBACK_CATEGORIES[PatternDomain.SECRET]

    def test_schema_violation_falls_back(self, tmp_path):
        path = tmp_path / "dangerous-patterns.jsonc"
        path.write_text(json.dumps({"patterns": {"bad": {"patterns": []}}}), encoding="utf-8")
        result = load_domain(PatternDomain.DANGEROUS_OPERATION, path)
        assert result.config_loaded is False

    def test_unknown_severity_falls_back(self, tmp_path):
        path = tmp_path / "dangerous-patterns.jsonc"
        body = {"patterns": {"odd": {"patterns": ["x"], "severity": "catastrophic"}}}
        path.write_text(json.dumps(body), encoding="utf-8")
        assert load_domain(PatternDomain.DANGEROUS_OPERATION, path).config_loaded is False

    def test_empty_document_falls_back(self, tmp_path):
        path = tmp_path / "dangerous-patterns.jsonc"
        path.write_text('{"patterns": {}}', encoding="utf-8")
        assert load_domain(PatternDomain.DANGEROUS_OPERATION, path).config_loaded is False

    def test_read_document_raises_pattern_config_error(self, tmp_path):
        with pytest.raises(PatternConfigError) as exc_info:
            read_pattern_document(tmp_path / "missing.jsonc")
        assert exc_info.value.code == "PATTERN_CONFIG_ERROR"

    def test_category_order_follows_document(self, tmp_path):
        path = tmp_path / "dangerous-patterns.jsonc"
        path.write_text(
            '{"patterns": {"zeta": {"patterns": ["z"]}, "alpha": {"patterns": ["a"]}}}',
            encoding="utf-8",
        )
        result = load_domain(PatternDomain.DANGEROUS_OPERATION, path)
        assert [c.key for c in result.categories] == ["zeta", "alpha"]


class TestJsonc:
    def test_strips_full_line_comments(self):
        text = '// header\n{\n  // inner\n  "a": 1\n}\n'
        assert json.loads(strip_jsonc_comments(text)) == {"a": 1}

    def test_keeps_urls_inside_strings(self):
        text = '{"url": "https://example.com"}'
        assert json.loads(strip_jsonc_comments(text)) == {"url": "https://example.com"}


class TestPatternCategory:
    def test_rejects_empty_pattern_string(self):
        with pytest.raises(ValidationError):
            PatternCategory(key="x", patterns=("",))

    def test_is_immutable(self):
        category = PatternCategory(key="x", patterns=("rm -rf",))
        with pytest.raises(ValidationError):
            category.patterns = ("ls",)

    def test_low_severity_reads_as_medium(self):
        category = PatternCategory(key="x", patterns=("y",), severity="low")
        assert category.severity == Severity.MEDIUM
