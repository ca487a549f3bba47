"""
Timeout and retry policy for blocking Firestore calls
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

from google.api_core import exceptions as gcp_exceptions

from app.services.data.errors import RemoteTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors worth another attempt; everything else (NotFound, PermissionDenied,
# InvalidArgument, ValueError...) fails immediately.
TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    RemoteTimeout,
    ConnectionError,
    gcp_exceptions.ServiceUnavailable,
    gcp_exceptions.DeadlineExceeded,
    gcp_exceptions.InternalServerError,
    gcp_exceptions.Aborted,
    gcp_exceptions.TooManyRequests,
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_backoff: float = 0.5
    max_backoff: float = 8.0
    multiplier: float = 2.0
    timeout: Optional[float] = 10.0

    @classmethod
    def from_settings(cls, config) -> "RetryPolicy":
        return cls(
            max_attempts=config.RETRY_MAX_ATTEMPTS,
            initial_backoff=config.RETRY_INITIAL_BACKOFF_SECONDS,
            max_backoff=config.RETRY_MAX_BACKOFF_SECONDS,
            timeout=config.REMOTE_TIMEOUT_SECONDS,
        )

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)"""
        return min(self.initial_backoff * (self.multiplier ** (attempt - 1)), self.max_backoff)


async def run_blocking(
    func: Callable[[], T],
    policy: RetryPolicy,
    operation: str,
    retry_timeouts: bool = True
) -> T:
    """
    Run a blocking SDK call in a worker thread with timeout and retries

    Args:
        func: Zero-argument callable doing the remote work
        policy: Attempts, backoff and per-attempt timeout
        operation: Human readable description for logs and RemoteTimeout
        retry_timeouts: Retry after a RemoteTimeout. Writes pass False: the
            abandoned attempt keeps running in its thread and may still land

    Returns:
        Whatever func returns

    Raises:
        The last error once attempts are exhausted, or the first non-transient error
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            if policy.timeout is None:
                return await asyncio.to_thread(func)
            try:
                return await asyncio.wait_for(asyncio.to_thread(func), policy.timeout)
            except asyncio.TimeoutError:
                raise RemoteTimeout(operation, policy.timeout) from None
        except TRANSIENT_ERRORS as e:
            if isinstance(e, RemoteTimeout) and not retry_timeouts:
                logger.error(f"{operation} timed out; not retrying")
                raise
            if attempt >= policy.max_attempts:
                logger.error(f"{operation} failed after {attempt} attempt(s): {e}")
                raise
            delay = policy.backoff(attempt)
            logger.warning(
                f"{operation} failed (attempt {attempt}/{policy.max_attempts}): {e}; "
                f"retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
