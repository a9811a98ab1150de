"""
One-time database bootstrap.

Callers that share a database (application startup, test sessions) hold a
DatabaseBootstrap and call ensure_initialized(); only the first caller runs
the sync, the others wait on the lock and reuse its result.
"""

import logging
import threading
from typing import Callable, Optional

from utils.errors import SyncFailedError
from utils.schemas import SyncResult

logger = logging.getLogger(__name__)


class DatabaseBootstrap:
    """Runs a synchronize callable at most once per successful initialization."""

    def __init__(self, synchronize: Callable[[], SyncResult], fail_on_errors: bool = True) -> None:
        """
        Args:
            synchronize: Performs the sync and returns the combined result
            fail_on_errors: Raise SyncFailedError when the result has errors
        """
        self._synchronize = synchronize
        self._fail_on_errors = fail_on_errors
        self._lock = threading.Lock()
        self._initialized = False
        self._result: Optional[SyncResult] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def result(self) -> Optional[SyncResult]:
        return self._result

    def ensure_initialized(self) -> SyncResult:
        """
        Run the sync if no earlier call succeeded.

        Raises:
            SyncFailedError: If the run reports errors; a later call retries
        """
        if self._initialized:
            return self._result

        with self._lock:
            if self._initialized:
                return self._result

            result = self._synchronize()
            if self._fail_on_errors and not result.ok:
                raise SyncFailedError(
                    f"SQL object sync failed with {result.errors} errors", result=result
                )

            self._result = result
            self._initialized = True
            logger.info("Database bootstrap complete: %s", result.summary())
            return result

    def reset(self) -> None:
        """Forget the previous initialization (teardown)."""
        with self._lock:
            self._initialized = False
            self._result = None
