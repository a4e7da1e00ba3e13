"""Temporal context provider: session length and time-of-day tags.

The gate itself only ever sees the resulting tag string.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from safegate.config import Settings


class TemporalTag(StrEnum):
    LONG_SESSION = "long_session"
    LATE_NIGHT = "late_night"
    VERY_EARLY = "very_early"
    NORMAL = "normal"


LATE_NIGHT_START_HOUR = 22
VERY_EARLY_START_HOUR = 4
DAY_START_HOUR = 6
DEFAULT_LONG_SESSION = timedelta(minutes=120)


def classify_temporal_context(
    now: datetime,
    session_start: datetime | None = None,
    long_session_after: timedelta = DEFAULT_LONG_SESSION,
) -> TemporalTag:
    """Classify *now* (and the session length, if known). Time of day wins."""
    hour = now.hour
    if hour >= LATE_NIGHT_START_HOUR or hour < VERY_EARLY_START_HOUR:
        return TemporalTag.LATE_NIGHT
    if hour < DAY_START_HOUR:
        return TemporalTag.VERY_EARLY

    if session_start is not None:
        if session_start.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone()
        elif session_start.tzinfo is None and now.tzinfo is not None:
            session_start = session_start.astimezone()
        if now - session_start >= long_session_after:
            return TemporalTag.LONG_SESSION
    return TemporalTag.NORMAL


def resolve_time_context(settings: Settings, now: datetime | None = None) -> str:
    """Return the tag to hand to the gate; an explicit setting is passed through."""
    if settings.time_context:
        return settings.time_context
    tag = classify_temporal_context(
        now or datetime.now().astimezone(),
        settings.session_start,
        timedelta(minutes=settings.long_session_minutes),
    )
    return "" if tag is TemporalTag.NORMAL else tag.value
