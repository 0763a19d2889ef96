"""
context.py — Cancellation and deadline token for Sign/Verify calls.

The core never inspects a Context beyond handing it to the capability being
called. Capabilities that block (network signers, identity verifiers) call
``check()`` before and after their blocking step and use ``remaining()`` as
their timeout.
"""

from __future__ import annotations
import threading
import time
from typing import Optional

from .errors import CancelledError


class Context:
    """Per-invocation cancellation flag plus optional monotonic deadline."""

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self.deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )

    @classmethod
    def background(cls) -> "Context":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None if there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self) -> None:
        """Raise CancelledError if the context is cancelled or past its deadline."""
        if self.cancelled:
            raise CancelledError("context cancelled")
        if self.expired():
            raise CancelledError("context deadline exceeded")
