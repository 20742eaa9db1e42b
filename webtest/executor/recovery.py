"""Retry with linear backoff, and memory-pressure recovery for the browser."""

from __future__ import annotations

import asyncio
import gc
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

import psutil

from webtest.errors import RecoveryError, RetryExhaustedError, ValidationError
from webtest.models.config import MemoryConfig, RetryConfig

if TYPE_CHECKING:
    from webtest.utils.browser import BrowserManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryConfig,
    label: str = "operation",
) -> T:
    """Await ``operation()`` up to ``policy.max_attempts`` times.

    The wait before attempt ``n + 1`` is ``base_delay_ms * n``. Validation
    errors are raised immediately. Once attempts run out the last error is
    wrapped in RetryExhaustedError.
    """
    last_error: BaseException | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except ValidationError:
            raise
        except Exception as e:
            last_error = e
            if attempt == policy.max_attempts:
                break
            delay_ms = policy.base_delay_ms * attempt
            logger.warning("%s failed (attempt %d/%d): %s; retrying in %dms",
                           label, attempt, policy.max_attempts, e, delay_ms)
            await asyncio.sleep(delay_ms / 1000)

    logger.error("%s failed after %d attempts", label, policy.max_attempts)
    raise RetryExhaustedError(label, policy.max_attempts, last_error) from last_error


class MemoryMonitor:
    """Samples process memory and recovers the browser above a threshold."""

    def __init__(self, config: MemoryConfig, process: psutil.Process | None = None):
        self.config = config
        self._process = process or psutil.Process()
        self.recoveries = 0

    def sample(self) -> int:
        """Resident set size of this process, in bytes."""
        return self._process.memory_info().rss

    async def check(
        self,
        browser_manager: BrowserManager | None = None,
        allow_restart: bool = True,
    ) -> bool:
        """Return True if the threshold was crossed and recovery was attempted.

        Above the threshold a garbage collection is forced; the browser is
        restarted as well when ``allow_restart`` is set and a manager is given.
        A failed restart raises RecoveryError.
        """
        if not self.config.enabled:
            return False

        usage = self.sample()
        if usage <= self.config.threshold_bytes:
            return False

        logger.warning("Memory usage %.1f MiB exceeds threshold of %.1f MiB",
                       usage / 1024 ** 2, self.config.threshold_bytes / 1024 ** 2)
        gc.collect()
        self.recoveries += 1

        if allow_restart and browser_manager is not None:
            try:
                await browser_manager.restart(self.config.recovery_delay_ms)
            except Exception as e:
                raise RecoveryError(f"Browser recovery failed: {e}") from e
            logger.info("Browser restarted after memory threshold breach")
        return True
