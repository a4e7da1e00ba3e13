"""Shared test fixtures."""

import io
import logging
import shutil
from pathlib import Path

import pytest
import structlog

from safegate.classifier import Classifier
from safegate.confirmation import ConfirmationOrchestrator
from safegate.pattern_store import PatternStore

REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


class ScriptedChannel:
    """Confirmation channel that replays canned responses and counts reads."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.reads = 0
        self.timeouts = []

    def read_response(self, timeout):
        self.reads += 1
        self.timeouts.append(timeout)
        if not self._responses:
            return None
        return self._responses.pop(0)


@pytest.fixture
def scripted_channel():
    return ScriptedChannel


@pytest.fixture
def fallback_store():
    return PatternStore.fallback()


@pytest.fixture
def classifier(fallback_store):
    return Classifier(fallback_store, platform="linux")


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def make_gate(classifier, output):
    """Build an orchestrator whose operator answers with *responses*."""

    def _make(*responses, timeout=5.0):
        channel = ScriptedChannel(*responses)
        gate = ConfirmationOrchestrator(classifier, channel, output=output, timeout=timeout)
        return gate, channel

    return _make


@pytest.fixture
def pattern_config_dir(tmp_path):
    """A copy of the shipped pattern documents in a temp dir."""
    target = tmp_path / "patterns"
    shutil.copytree(REPO_CONFIG_DIR, target)
    return target


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep tests away from the developer's real config, audit log and terminal."""
    for name in ("SAFEGATE_TIME_CONTEXT", "SAFEGATE_SESSION_START", "SAFEGATE_CONFIRMATION_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SAFEGATE_CONFIG_DIR", str(tmp_path / "no-patterns"))
    monkeypatch.setenv("SAFEGATE_CONFIG_FILE", str(tmp_path / "no-such-safegate.toml"))
    monkeypatch.setenv("SAFEGATE_AUDIT_PATH", str(tmp_path / "audit" / "audit.jsonl"))


@pytest.fixture
def restore_logging():
    """Undo handler and context changes made by configure_logging()."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
