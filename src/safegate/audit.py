"""Append-only audit log for gate decisions, plus fire-and-forget dispatch.

Entries are ``AuditEntry`` records, one compact JSON object per line. They never
contain warning text, raw commands or scanned prompt content.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from safegate.models import AuditEntry, AuditEvent

logger = logging.getLogger(__name__)

if sys.platform == "win32":
    import msvcrt

    def _lock(fd: int) -> None:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_LOCK, 1)

    def _unlock(fd: int) -> None:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _lock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_EX)

    def _unlock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)


@contextmanager
def _locked_append(path: Path) -> Iterator[int]:
    """Owner-only append descriptor, held under an exclusive lock."""
    fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
    try:
        _lock(fd)
        try:
            yield fd
        finally:
            _unlock(fd)
    finally:
        os.close(fd)


class AuditLogger:
    """Records gate decisions to a JSON-lines file and reads them back."""

    def __init__(self, audit_path: Path) -> None:
        self._path = audit_path

    @property
    def path(self) -> Path:
        return self._path

    def record(self, entry: AuditEntry) -> None:
        line = entry.model_dump_json(exclude_none=True) + "\n"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with _locked_append(self._path) as fd:
            os.write(fd, line.encode("utf-8"))

    def entries(
        self,
        *,
        since: datetime | None = None,
        event: AuditEvent | str | None = None,
    ) -> list[AuditEntry]:
        """Read back recorded entries, oldest first.

        A naive *since* is taken as UTC. Lines that do not parse as entries
        (a torn write, manual edits) are skipped.
        """
        if not self._path.exists():
            return []
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        found: list[AuditEntry] = []
        with open(self._path, encoding="utf-8", errors="replace") as f:
            for lineno, raw_line in enumerate(f, 1):
                if not raw_line.strip():
                    continue
                try:
                    entry = AuditEntry.model_validate_json(raw_line)
                except ValidationError:
                    logger.debug("skipping unreadable audit line %d in %s", lineno, self._path)
                    continue
                if event and entry.event != event:
                    continue
                if since and entry.timestamp < since:
                    continue
                found.append(entry)
        return found


# ── Detached tasks ───────────────────────────────────────────────────────

_pending: set[DetachedTask] = set()
_pending_lock = threading.Lock()


class DetachedTask:
    """A background call whose result and failure are both discarded."""

    def __init__(self, fn: Callable[..., Any], args: tuple, kwargs: dict[str, Any]) -> None:
        self._fn = fn
        self._args = args
        self._kwargs = kwargs
        self._thread = threading.Thread(
            target=self._run, name=f"safegate-detached-{getattr(fn, '__name__', 'task')}", daemon=True
        )
        self.failed = False

    def start(self) -> DetachedTask:
        with _pending_lock:
            _pending.add(self)
        self._thread.start()
        return self

    def done(self) -> bool:
        return not self._thread.is_alive()

    def join(self, timeout: float | None = None) -> bool:
        self._thread.join(timeout)
        return self.done()

    def _run(self) -> None:
        try:
            self._fn(*self._args, **self._kwargs)
        except Exception:
            self.failed = True
            logger.debug("detached task failed", exc_info=True)
        finally:
            with _pending_lock:
                _pending.discard(self)


def dispatch_detached(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> DetachedTask:
    """Run ``fn(*args, **kwargs)`` in the background without waiting for it."""
    return DetachedTask(fn, args, kwargs).start()


def wait_for_detached(timeout: float) -> int:
    """Give outstanding detached tasks up to *timeout* seconds in total.

    Only for process exit, after the decision is already made.
    Returns how many tasks are still running.
    """
    deadline = time.monotonic() + max(timeout, 0.0)
    with _pending_lock:
        tasks = list(_pending)
    for task in tasks:
        task.join(max(deadline - time.monotonic(), 0.0))
    return sum(1 for task in tasks if not task.done())
