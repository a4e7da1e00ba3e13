"""Assemble a ready-to-use gate from settings."""

from __future__ import annotations

from typing import IO

from safegate.classifier import Classifier
from safegate.config import Settings
from safegate.confirmation import (
    ConfirmationChannel,
    ConfirmationOrchestrator,
    build_terminal_channel,
)
from safegate.pattern_store import PatternStore, load_pattern_store


def build_gate(
    settings: Settings,
    *,
    store: PatternStore | None = None,
    channel: ConfirmationChannel | None = None,
    output: IO[str] | None = None,
) -> ConfirmationOrchestrator:
    """Load patterns once and wire the classifier, channel and orchestrator."""
    store = store or load_pattern_store(settings.config_dir.expanduser())
    return ConfirmationOrchestrator(
        Classifier(store),
        channel or build_terminal_channel(settings.confirmation_device),
        output=output,
        timeout=settings.confirmation_timeout,
    )
