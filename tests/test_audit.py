"""Tests for the audit log and detached dispatch."""

import stat
import sys
import threading
import time
from datetime import datetime, timezone

import pytest

from safegate.audit import AuditLogger, dispatch_detached, wait_for_detached
from safegate.models import AuditEntry, AuditEvent, Decision, PatternDomain


def _entry(target="ls", decision=Decision.ALLOW, event=AuditEvent.PRE_TOOL_USE, **fields):
    return AuditEntry(event=event, decision=decision, target=target, **fields)


class TestAuditLogger:
    def test_record_and_read_back(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit.jsonl")
        audit.record(
            _entry(
                "git push",
                Decision.DENY,
                tool_name="Bash",
                domain=PatternDomain.DANGEROUS_OPERATION,
                category="git_force_push",
                needs_confirmation=True,
            )
        )
        [entry] = audit.entries()
        assert entry.target == "git push"
        assert entry.decision == Decision.DENY
        assert entry.domain == PatternDomain.DANGEROUS_OPERATION
        assert entry.category == "git_force_push"
        assert entry.needs_confirmation is True
        assert entry.timestamp.tzinfo is not None

    def test_lines_are_compact_json_without_unset_fields(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit.jsonl")
        audit.record(_entry())
        line = audit.path.read_text(encoding="utf-8")
        assert line.endswith("\n")
        assert '"decision":"allow"' in line
        assert "prompt_length" not in line
        assert "category" not in line

    def test_creates_parent_directory(self, tmp_path):
        audit = AuditLogger(tmp_path / "nested" / "state" / "audit.jsonl")
        audit.record(_entry())
        assert audit.path.exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_file_is_owner_only(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit.jsonl")
        audit.record(_entry())
        assert stat.S_IMODE(audit.path.stat().st_mode) & 0o077 == 0

    def test_filter_by_event(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit.jsonl")
        audit.record(_entry("ls"))
        audit.record(_entry("prompt", event=AuditEvent.PROMPT_SUBMIT, prompt_length=12))
        audit.record(_entry("rm", Decision.DENY))

        assert len(audit.entries(event=AuditEvent.PRE_TOOL_USE)) == 2
        [prompt] = audit.entries(event="prompt_submit")
        assert prompt.prompt_length == 12

    def test_filter_by_time(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit.jsonl")
        audit.record(_entry())

        future = datetime(2099, 1, 1, tzinfo=timezone.utc)
        assert audit.entries(since=future) == []

        past = datetime(2000, 1, 1)
        assert len(audit.entries(since=past)) == 1

    def test_corrupt_lines_are_skipped(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit.jsonl")
        audit.record(_entry("ls"))
        with open(audit.path, "a", encoding="utf-8") as f:
            f.write('{"event": "pre_tool_use", "decis\n')
            f.write("not json at all\n")
            f.write('{"event": "unknown", "decision": "allow"}\n')
            f.write("\n")
        audit.record(_entry("rm", Decision.DENY))

        assert [e.target for e in audit.entries()] == ["ls", "rm"]

    def test_missing_file_is_empty(self, tmp_path):
        assert AuditLogger(tmp_path / "none.jsonl").entries() == []

    def test_parallel_appends(self, tmp_path):
        audit = AuditLogger(tmp_path / "audit.jsonl")
        threads = [
            threading.Thread(target=audit.record, args=(_entry(f"cmd_{i}"),))
            for i in range(10)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(audit.entries()) == 10


class TestDetachedDispatch:
    def test_returns_before_task_finishes(self):
        release = threading.Event()
        start = time.monotonic()
        task = dispatch_detached(release.wait, 5.0)
        assert time.monotonic() - start < 1.0
        assert not task.done()
        release.set()
        assert task.join(5.0) is True

    def test_failure_is_swallowed(self):
        def boom():
            raise RuntimeError("disk full")

        task = dispatch_detached(boom)
        assert task.join(5.0) is True
        assert task.failed is True

    def test_wait_for_detached_is_bounded(self):
        release = threading.Event()
        dispatch_detached(release.wait, 10.0)
        start = time.monotonic()
        assert wait_for_detached(0.1) >= 1
        assert time.monotonic() - start < 2.0
        release.set()
        assert wait_for_detached(5.0) == 0
