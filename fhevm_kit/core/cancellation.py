"""Cooperative cancellation for bootstrap attempts."""

from __future__ import annotations

import uuid

from fhevm_kit.core.errors import FhevmAbortError


class CancellationToken:
    """Caller-controlled cancel signal bound to one bootstrap attempt.

    Cancellation is one-way: once ``cancel()`` has been called the token
    stays cancelled. Work checks the token at its suspension points via
    ``raise_if_cancelled()``.
    """

    def __init__(self) -> None:
        self.attempt_id = uuid.uuid4().hex
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise FhevmAbortError()

    def __repr__(self) -> str:
        return f"CancellationToken(attempt_id={self.attempt_id[:8]!r}, cancelled={self._cancelled})"
