"""Last-request-wins holder for one caller's engine instance.

Each ``refresh()`` cancels the attempt before it and starts a new one.
Only the newest attempt may update ``instance``, ``error``, ``exception``,
``status`` or ``is_loading``; results and failures of superseded attempts
are dropped.
"""

from __future__ import annotations

import logging
from typing import Mapping

from fhevm_kit.bootstrap.factory import FhevmInstanceFactory
from fhevm_kit.core.cancellation import CancellationToken
from fhevm_kit.core.errors import ErrorCode, FhevmAbortError, FhevmError
from fhevm_kit.core.logging import bind_context
from fhevm_kit.core.types import BootstrapStatus, Endpoint, FhevmInstance, StatusCallback

logger = logging.getLogger(__name__)


class FhevmSession:
    """Tracks the current engine instance for a provider."""

    def __init__(
        self,
        provider: Endpoint | None,
        *,
        mock_chains: Mapping[int, str] | None = None,
        factory: FhevmInstanceFactory | None = None,
        on_status_change: StatusCallback | None = None,
    ) -> None:
        self.provider = provider
        self.mock_chains = dict(mock_chains) if mock_chains else None
        self._factory = factory or FhevmInstanceFactory()
        self._on_status_change = on_status_change
        self._token: CancellationToken | None = None

        self.instance: FhevmInstance | None = None
        self.error: str | None = None
        self.exception: Exception | None = None
        self.status: BootstrapStatus | None = None
        self.is_loading = False

    @property
    def error_code(self) -> ErrorCode | None:
        """Machine-readable code of the current failure, if it carries one."""
        if isinstance(self.exception, FhevmError):
            return self.exception.code
        return None

    def _reset(self) -> None:
        self.error = None
        self.exception = None
        self.status = None

    async def refresh(self) -> FhevmInstance | None:
        """Cancel any in-flight attempt and build a fresh instance.

        Returns the new instance, or None when there is no provider, the
        attempt failed, or a newer ``refresh()`` superseded this one.
        """
        if self._token is not None:
            self._token.cancel()

        if self.provider is None:
            self._token = None
            self.instance = None
            self.is_loading = False
            self._reset()
            return None

        token = CancellationToken()
        self._token = token
        self.is_loading = True
        self._reset()
        log = bind_context(logger, attempt_id=token.attempt_id)

        def on_status(status: BootstrapStatus) -> None:
            if token is not self._token:
                return
            self.status = status
            if self._on_status_change is not None:
                self._on_status_change(status)

        try:
            instance = await self._factory.create(
                self.provider,
                token=token,
                mock_chains=self.mock_chains,
                on_status_change=on_status,
            )
        except FhevmAbortError:
            log.debug("Bootstrap attempt cancelled")
            return None
        except Exception as exc:
            if token.cancelled:
                log.debug("Dropping failure of superseded attempt: %s", exc)
                return None
            log.error("Failed to create FHEVM instance: %s", exc)
            self.exception = exc
            self.error = str(exc) or "Failed to create FHEVM instance"
            self.is_loading = False
            return None

        if token.cancelled:
            return None
        self.instance = instance
        self.is_loading = False
        return instance

    def close(self) -> None:
        """Cancel the in-flight attempt, if any."""
        if self._token is not None:
            self._token.cancel()
