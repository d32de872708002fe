"""
Bounded retry execution.

Runs one relayer operation up to a fixed number of times with a fixed delay
between attempts. Each attempt is classified as success, business rejection
(returned immediately, never retried) or transient error (retried until the
attempts run out).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple, Type

from ..schemas.bases import AttemptOutcome
from ..schemas.relayer import RelayerResponse, SettlementAttempt
from .exceptions import TransientNetwork

logger = logging.getLogger(__name__)

AttemptFunc = Callable[[int], Awaitable[RelayerResponse]]
ClassifyFunc = Callable[[RelayerResponse], AttemptOutcome]
SleepFunc = Callable[[float], Awaitable[None]]


def classify_relayer_response(response: RelayerResponse) -> AttemptOutcome:
    """
    Default classification of a relayer response.

    ``success: true`` is a success and an explicit ``success: false`` is a
    definitive business rejection. A body without a ``success`` flag carries
    no outcome and is treated as transient.
    """
    if response.success is True:
        return AttemptOutcome.SUCCESS
    if response.is_business_failure():
        return AttemptOutcome.BUSINESS_REJECTED
    return AttemptOutcome.TRANSIENT_ERROR


@dataclass
class RetryResult:
    """
    Final outcome of a retried operation.

    Attributes:
        outcome: Outcome of the last attempt.
        response: Response of the last attempt that produced one.
        attempts: Every attempt in order.
        error_message: Message of the last observed failure.
    """
    outcome: AttemptOutcome
    response: Optional[RelayerResponse] = None
    attempts: List[SettlementAttempt] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is AttemptOutcome.SUCCESS


class RetryExecutor:
    """Executes an operation with bounded attempts and a fixed delay."""

    def __init__(
        self,
        max_attempts: int = 3,
        delay: float = 1.0,
        *,
        classify: ClassifyFunc = classify_relayer_response,
        retry_on: Tuple[Type[BaseException], ...] = (TransientNetwork,),
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """
        Initialize the executor.

        Args:
            max_attempts: Upper bound on attempts (at least 1).
            delay: Seconds to wait between attempts.
            classify: Maps a response to an ``AttemptOutcome``.
            retry_on: Exception types treated as transient; others propagate.
            sleep: Awaitable sleep used between attempts.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay = delay
        self._classify = classify
        self._retry_on = retry_on
        self._sleep = sleep

    async def execute(self, operation: AttemptFunc, label: str = "operation") -> RetryResult:
        """
        Run ``operation`` until it succeeds, is rejected, or attempts run out.

        Args:
            operation: Coroutine function receiving the 1-based attempt number.
            label: Name used in log records.

        Returns:
            RetryResult: Outcome, last response and the attempt history.
        """
        attempts: List[SettlementAttempt] = []
        last_response: Optional[RelayerResponse] = None
        last_error: Optional[str] = None

        for attempt in range(1, self.max_attempts + 1):
            logger.debug("%s attempt %d/%d", label, attempt, self.max_attempts)
            try:
                response = await operation(attempt)
            except self._retry_on as exc:
                last_error = getattr(exc, "message", None) or str(exc)
                attempts.append(SettlementAttempt(
                    attempt=attempt,
                    outcome=AttemptOutcome.TRANSIENT_ERROR,
                    error_message=last_error,
                ))
                logger.warning("%s attempt %d/%d failed: %s", label, attempt, self.max_attempts, last_error)
            else:
                last_response = response
                outcome = self._classify(response)
                attempts.append(SettlementAttempt(
                    attempt=attempt,
                    outcome=outcome,
                    response=response,
                    error_message=None if outcome is AttemptOutcome.SUCCESS else response.message,
                ))

                if outcome is AttemptOutcome.SUCCESS:
                    if attempt > 1:
                        logger.info("%s succeeded on attempt %d", label, attempt)
                    return RetryResult(outcome=outcome, response=response, attempts=attempts)

                if outcome is AttemptOutcome.BUSINESS_REJECTED:
                    logger.info("%s rejected, not retrying: %s", label, response.message)
                    return RetryResult(
                        outcome=outcome,
                        response=response,
                        attempts=attempts,
                        error_message=response.message,
                    )

                last_error = response.message or f"{label} returned no definitive outcome"
                logger.warning("%s attempt %d/%d inconclusive: %s", label, attempt, self.max_attempts, last_error)

            if attempt < self.max_attempts:
                await self._sleep(self.delay)

        logger.error("%s failed after %d attempts: %s", label, self.max_attempts, last_error)
        return RetryResult(
            outcome=AttemptOutcome.TRANSIENT_ERROR,
            response=last_response,
            attempts=attempts,
            error_message=last_error or f"{label} failed after {self.max_attempts} attempts",
        )
