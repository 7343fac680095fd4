"""Exponential backoff retry for calls against external providers."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from shared.exceptions.errors import ExternalServiceError, TransientServiceError
from shared.helper.HelperConfig import HelperConfig

DEFAULT_BASE_DELAY = 1.0
DEFAULT_MULTIPLIER = 2.0
DEFAULT_MAX_DELAY = 10.0


def is_transient_failure(exc: BaseException) -> bool:
    """Default retry predicate: network/timeout errors and transient backend answers."""
    return isinstance(exc, (httpx.TransportError, TransientServiceError))


class RetryPolicy:
    """Runs an async operation and retries it with exponential backoff.

    The first retry waits base_delay seconds, each further retry multiplies the
    wait by multiplier, capped at max_delay. At most max_retries retries are made,
    so an operation is attempted max_retries + 1 times in total.
    """

    def __init__(
        self,
        logger: logging.Logger,
        service: str = "external",
        max_retries: int = 3,
        base_delay: float = DEFAULT_BASE_DELAY,
        multiplier: float = DEFAULT_MULTIPLIER,
        max_delay: float = DEFAULT_MAX_DELAY,
        retryable: Callable[[BaseException], bool] = is_transient_failure,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        self.logging = logger
        self.service = service
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self._retryable = retryable
        self._sleep = sleep

    @classmethod
    def from_config(cls, helper_config: HelperConfig, prefix: str, default_max_retries: int = 3) -> "RetryPolicy":
        """Build a policy from {PREFIX}_MAX_RETRIES, {PREFIX}_RETRY_BASE_DELAY,
        {PREFIX}_RETRY_MULTIPLIER and {PREFIX}_RETRY_MAX_DELAY."""
        prefix = prefix.upper()
        return cls(
            logger=helper_config.get_logger(),
            service=prefix.lower(),
            max_retries=helper_config.get_int_val(f"{prefix}_MAX_RETRIES", default=default_max_retries, minimum=0),
            base_delay=float(helper_config.get_number_val(f"{prefix}_RETRY_BASE_DELAY", default=DEFAULT_BASE_DELAY)),
            multiplier=float(helper_config.get_number_val(f"{prefix}_RETRY_MULTIPLIER", default=DEFAULT_MULTIPLIER)),
            max_delay=float(helper_config.get_number_val(f"{prefix}_RETRY_MAX_DELAY", default=DEFAULT_MAX_DELAY)),
        )

    def get_delay(self, retry_number: int) -> float:
        """Wait time in seconds before the given retry (1-based)."""
        return min(self.base_delay * (self.multiplier ** (retry_number - 1)), self.max_delay)

    def is_retryable(self, exc: BaseException) -> bool:
        return self._retryable(exc)

    async def run(self, operation: Callable[[], Awaitable[Any]], description: str = "request") -> Any:
        """Execute operation until it succeeds, fails permanently or retries are exhausted.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt.
            description: Human readable name of the call, used in logs and errors.

        Returns:
            Any: Whatever the operation returns.

        Raises:
            ExternalServiceError: When every attempt failed with a retryable error.
                The last failure is chained as __cause__.
            Exception: Any non-retryable error is re-raised unchanged on first occurrence.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                if attempt > self.max_retries:
                    self.logging.error(
                        "%s failed after %d attempt(s), giving up: %s",
                        description, attempt, exc,
                    )
                    status_code = exc.status_code if isinstance(exc, ExternalServiceError) else None
                    raise ExternalServiceError(
                        f"{description} failed after {attempt} attempt(s): {exc}",
                        service=self.service,
                        status_code=status_code,
                        attempts=attempt,
                    ) from exc
                delay = self.get_delay(attempt)
                self.logging.warning(
                    "%s failed (attempt %d of %d): %s. Retrying in %.1fs...",
                    description, attempt, self.max_retries + 1, exc, delay,
                )
                await self._sleep(delay)
