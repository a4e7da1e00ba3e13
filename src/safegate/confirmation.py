"""Confirmation orchestrator: warn, read one line, validate exactly.

States per evaluation::

    NOT_EVALUATED -> CLASSIFIED -> SKIPPED
                                -> AWAITING_RESPONSE -> ALLOWED | DENIED

A closed, unreadable or silent confirmation channel resolves to DENIED.
"""

from __future__ import annotations

import logging
import os
import select
import sys
import threading
import time
from enum import StrEnum
from typing import IO, Protocol

from safegate.classifier import Classifier
from safegate.errors import ConfirmationChannelError, SafeGateError
from safegate.models import (
    ClassificationResult,
    ConfirmationOutcome,
    ConfirmationRequest,
    PatternDomain,
)
from safegate.renderer import render_prompt, render_secret_advisory, render_warning

logger = logging.getLogger(__name__)


class GateState(StrEnum):
    NOT_EVALUATED = "not_evaluated"
    CLASSIFIED = "classified"
    SKIPPED = "skipped"
    AWAITING_RESPONSE = "awaiting_response"
    ALLOWED = "allowed"
    DENIED = "denied"


# ── Confirmation channels ────────────────────────────────────────────────


class ConfirmationChannel(Protocol):
    def read_response(self, timeout: float | None) -> str | None:
        """Return one line of operator input, or None if nothing arrived."""
        ...


class ClosedChannel:
    """A channel with no operator behind it."""

    def read_response(self, timeout: float | None) -> str | None:
        return None


class StreamChannel:
    """Reads a single line from a text stream, bounded by a timeout."""

    def __init__(self, stream: IO[str]) -> None:
        self._stream = stream

    def read_response(self, timeout: float | None) -> str | None:
        if getattr(self._stream, "closed", False):
            raise ConfirmationChannelError("Confirmation stream is closed")
        try:
            if timeout is None or not self._has_fileno():
                line = self._stream.readline()
            elif sys.platform != "win32":
                line = self._select_readline(timeout)
            else:
                line = self._threaded_readline(timeout)
        except (OSError, ValueError) as exc:
            raise ConfirmationChannelError(f"Cannot read confirmation: {exc}") from exc
        # EOF
        return line or None

    def _has_fileno(self) -> bool:
        try:
            self._stream.fileno()
        except (OSError, ValueError):
            return False
        return True

    def _select_readline(self, timeout: float) -> str:
        # Byte-wise reads on the raw descriptor: a partial line must not block
        # past the deadline, and nothing after the newline may be consumed.
        fd = self._stream.fileno()
        deadline = time.monotonic() + timeout
        buf = bytearray()
        while not buf.endswith(b"\n"):
            remaining = deadline - time.monotonic()
            ready = select.select([fd], [], [], remaining)[0] if remaining > 0 else []
            if not ready:
                logger.info("confirmation timed out after %.1fs", timeout)
                return ""
            chunk = os.read(fd, 1)
            if not chunk:
                break  # EOF
            buf += chunk
        encoding = getattr(self._stream, "encoding", None) or "utf-8"
        return buf.decode(encoding, errors="replace")

    def _threaded_readline(self, timeout: float) -> str:
        result: list[str] = []
        reader = threading.Thread(
            target=lambda: result.append(self._stream.readline()),
            name="safegate-confirm",
            daemon=True,
        )
        reader.start()
        reader.join(timeout)
        if not result:
            logger.info("confirmation timed out after %.1fs", timeout)
            return ""
        return result[0]


def default_terminal_device() -> str:
    return "CON" if sys.platform == "win32" else "/dev/tty"


class TerminalChannel:
    """Opens the controlling terminal for the one read, then closes it.

    Hooks receive their payload on stdin, so the operator's answer has to come
    from the terminal device instead.
    """

    def __init__(self, device: str | None = None) -> None:
        self._device = device or default_terminal_device()

    @property
    def device(self) -> str:
        return self._device

    def read_response(self, timeout: float | None) -> str | None:
        try:
            stream = open(self._device, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ConfirmationChannelError(
                f"Cannot open {self._device}: {exc.strerror or exc}"
            ) from exc
        with stream:
            return StreamChannel(stream).read_response(timeout)


# ── Orchestrator ─────────────────────────────────────────────────────────


class ConfirmationOrchestrator:
    """Drives one blocking evaluation per call. Holds no per-call state."""

    def __init__(
        self,
        classifier: Classifier,
        channel: ConfirmationChannel,
        *,
        output: IO[str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self._classifier = classifier
        self._channel = channel
        self._output = output
        self._timeout = timeout

    @property
    def classifier(self) -> Classifier:
        return self._classifier

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def confirm_bash_operation(
        self, command: str, time_context: str = "", *, timeout: float | None = None
    ) -> ConfirmationOutcome:
        result = self._classifier.classify(PatternDomain.DANGEROUS_OPERATION, command)
        return self._evaluate(command, result, time_context, timeout)

    def confirm_file_write(
        self, path: str, time_context: str = "", *, timeout: float | None = None
    ) -> ConfirmationOutcome:
        result = self._classifier.classify(PatternDomain.CRITICAL_PATH, path)
        return self._evaluate(path, result, time_context, timeout)

    def display_secret_warning(self) -> None:
        """Show the generic secret advisory. Never reads the channel."""
        self._write(render_secret_advisory())

    def warn_if_secret(self, text: str) -> bool:
        """Show the advisory if *text* looks like it contains a secret."""
        if not self._classifier.contains_likely_secret(text):
            return False
        self.display_secret_warning()
        return True

    # ── Internals ────────────────────────────────────────────────────────

    def _evaluate(
        self,
        raw_input: str,
        result: ClassificationResult,
        time_context: str,
        timeout: float | None,
    ) -> ConfirmationOutcome:
        self._transition(GateState.NOT_EVALUATED, GateState.CLASSIFIED, result.domain)
        if not result.matched:
            self._transition(GateState.CLASSIFIED, GateState.SKIPPED, result.domain)
            return ConfirmationOutcome.skipped()

        request = ConfirmationRequest(
            raw_input=raw_input,
            domain=result.domain,
            category=result.category,
            time_context=time_context or "",
        )
        self._transition(GateState.CLASSIFIED, GateState.AWAITING_RESPONSE, result.domain, result.key)
        self._write(render_warning(request))
        self._write(render_prompt(request))

        response = self._read_response(self._timeout if timeout is None else timeout)
        allowed = response is not None and response.strip() == request.required_token
        if response is None:
            # Keep the operator's terminal tidy after an unanswered prompt.
            self._write("\n")

        final = GateState.ALLOWED if allowed else GateState.DENIED
        self._transition(GateState.AWAITING_RESPONSE, final, result.domain, result.key)
        return ConfirmationOutcome.resolved(allowed)

    def _read_response(self, timeout: float | None) -> str | None:
        try:
            return self._channel.read_response(timeout)
        except SafeGateError as exc:
            logger.info("confirmation channel unavailable: %s", exc.message)
            return None

    def _write(self, text: str) -> None:
        stream = self._output if self._output is not None else sys.stderr
        try:
            stream.write(text)
            stream.flush()
        except (OSError, ValueError):
            logger.debug("operator output stream unavailable")

    @staticmethod
    def _transition(
        old: GateState, new: GateState, domain: PatternDomain, key: str | None = None
    ) -> None:
        logger.debug("gate %s -> %s (domain=%s category=%s)", old, new, domain, key)


def build_terminal_channel(device: str | None = None) -> ConfirmationChannel:
    """Terminal channel when a device path exists, otherwise a closed channel."""
    device = device or default_terminal_device()
    if sys.platform != "win32" and not os.path.exists(device):
        return ClosedChannel()
    return TerminalChannel(device)
