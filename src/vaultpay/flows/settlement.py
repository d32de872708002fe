"""
Verify-then-settle transfer flow.

``SettlementCoordinator`` owns the transfer state machine for one client:

    idle -> signing -> verifying -> settling -> success
              \\           \\           \\
               +-----------+-----------+--> error

Verification is attempted once. Settlement is retried with a fixed delay for
transient failures (transport errors, responses without an outcome) and
returns at once on an explicit rejection.

``verify_payment`` and ``settle_payment`` are also usable on their own.
"""

import asyncio
import logging
from typing import Callable, Optional

from ..adapters.evm.constants import ProtocolSettings
from ..clients.relayer import RelayerClient
from ..engine.events import (
    BaseEvent,
    BeginSigningEvent,
    FailedEvent,
    ResetEvent,
    SettledEvent,
    SignedEvent,
    SnapshotCallback,
    StateBus,
    VerifiedEvent,
)
from ..engine.exceptions import (
    BusinessRejected,
    MissingInput,
    TransientNetwork,
    VaultPayError,
)
from ..engine.executors import RetryExecutor, SleepFunc
from ..engine.states import (
    IDLE_SNAPSHOT,
    ProtocolState,
    TransferSnapshot,
    apply_event,
)
from ..schemas.bases import AttemptOutcome
from ..schemas.relayer import PaymentRequest, SettleResponse, SettlementResult, VerifyResponse
from .authorization import AuthorizationSigner
from .balances import TokenBalance

logger = logging.getLogger(__name__)


async def verify_payment(relayer: RelayerClient, request: PaymentRequest) -> VerifyResponse:
    """
    Verify a signed authorization with the relayer. Never retried.

    Returns:
        VerifyResponse: The accepting response.

    Raises:
        TransientNetwork: The relayer could not be reached or answered non-2xx.
        BusinessRejected: ``success`` was not true or ``data.isValid`` was false.
    """
    response = await relayer.verify(request)
    if not response.is_valid():
        raise BusinessRejected(
            response.message or "Verification failed",
            detail=response.to_dict(),
        )
    logger.debug("Verify result: %s", response.to_canonical_json())
    return response


async def settle_payment(
    relayer: RelayerClient,
    request: PaymentRequest,
    *,
    max_attempts: int = 3,
    delay: float = 1.0,
    sleep: SleepFunc = asyncio.sleep,
) -> SettleResponse:
    """
    Settle a verified authorization, retrying transient failures.

    Args:
        relayer: Relayer client.
        request: ``{domain, message}`` body.
        max_attempts: Upper bound on attempts.
        delay: Seconds between attempts.
        sleep: Awaitable sleep used between attempts.

    Returns:
        SettleResponse: The successful response.

    Raises:
        BusinessRejected: The relayer explicitly rejected the authorization.
        TransientNetwork: Every attempt failed transiently; carries the last error.
    """
    executor = RetryExecutor(max_attempts, delay, sleep=sleep)
    result = await executor.execute(lambda attempt: relayer.settle(request), label="Settle")

    if result.succeeded:
        logger.debug("Settle result: %s", result.response.to_canonical_json())
        return result.response

    attempts = [attempt.to_dict() for attempt in result.attempts]
    if result.outcome is AttemptOutcome.BUSINESS_REJECTED:
        raise BusinessRejected(result.error_message or "Settlement failed", detail=attempts)
    raise TransientNetwork(
        result.error_message or f"Settlement failed after {max_attempts} attempts",
        detail=attempts,
    )


class SettlementCoordinator:
    """
    Drives one transfer at a time through sign, verify and settle.

    Starting a new transfer resets the coordinator first; the superseded
    flow keeps running until its pending call returns, then notices it is
    stale and exits without touching state.

    The UI reads ``snapshot`` (or subscribes to it) and never mutates it.

    Example:
        coordinator = SettlementCoordinator(signer, relayer, balance=token_balance)
        coordinator.subscribe(lambda snap: print(snap.state))
        if await coordinator.execute_transfer("0xRecipient...", "10"):
            print(coordinator.snapshot.tx_result.tx_hash)
    """

    def __init__(
        self,
        signer: AuthorizationSigner,
        relayer: RelayerClient,
        *,
        balance: Optional[TokenBalance] = None,
        settings: Optional[ProtocolSettings] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self._signer = signer
        self._relayer = relayer
        self._balance = balance
        self._settings = settings or ProtocolSettings()
        self._sleep = sleep
        self._bus = StateBus()
        self._snapshot: TransferSnapshot = IDLE_SNAPSHOT
        self._generation = 0
        self.last_error: Optional[VaultPayError] = None

    # -------------------------------------------------------------------------
    # Observable surface
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> TransferSnapshot:
        return self._snapshot

    @property
    def state(self) -> ProtocolState:
        return self._snapshot.state

    @property
    def is_processing(self) -> bool:
        return self._snapshot.state.is_in_flight()

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register a synchronous snapshot callback; returns an unsubscribe function."""
        return self._bus.subscribe(callback)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def reset_state(self) -> None:
        """Return to idle, discarding the authorization and settlement result."""
        self._generation += 1
        self.last_error = None
        self._signer.clear()
        self._dispatch(ResetEvent())

    async def execute_transfer(self, recipient: str, amount: str) -> bool:
        """
        Sign, verify and settle a transfer of ``amount`` to ``recipient``.

        Returns:
            bool: True once the relayer settled the transfer. On False the
            snapshot is in ``error`` with a readable message, unless this flow
            was superseded by a newer one.
        """
        self.reset_state()
        generation = self._generation

        if not recipient or not amount:
            self._fail(MissingInput())
            return False

        self._dispatch(BeginSigningEvent(recipient=recipient, amount=amount))

        try:
            authorization = await self._signer.sign_transfer_authorization(
                recipient, amount, known_balance=self._known_balance()
            )
            if self._is_stale(generation):
                if self._signer.last_authorization is authorization:
                    self._signer.clear()
                return False
            self._dispatch(SignedEvent(authorization=authorization))

            request = authorization.to_payment_request()
            await verify_payment(self._relayer, request)
            if self._is_stale(generation):
                return False
            self._dispatch(VerifiedEvent())

            response = await settle_payment(
                self._relayer,
                request,
                max_attempts=self._settings.settle_max_attempts,
                delay=self._settings.settle_retry_delay,
                sleep=self._sleep,
            )
            if self._is_stale(generation):
                return False
        except VaultPayError as exc:
            if not self._is_stale(generation):
                self._fail(exc)
            return False
        except Exception as exc:
            if not self._is_stale(generation):
                self._fail(VaultPayError("Transfer failed", detail=repr(exc)))
            raise

        self._dispatch(SettledEvent(result=SettlementResult.from_response(response)))
        logger.info("Transfer settled: %s", self._snapshot.tx_result.tx_hash)

        if self._balance is not None:
            await self._balance.refresh()
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _known_balance(self) -> Optional[str]:
        if self._balance is None or not self._balance.is_loaded:
            return None
        return self._balance.balance

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.info("Discarding result of a superseded transfer")
            return True
        return False

    def _fail(self, error: VaultPayError) -> None:
        self.last_error = error
        logger.error("Transfer failed in %s: %s (%s)", self._snapshot.state.value, error.message, error.detail)
        self._dispatch(FailedEvent(error_message=error.message))

    def _dispatch(self, event: BaseEvent) -> None:
        previous = self._snapshot.state
        self._snapshot = apply_event(self._snapshot, event)
        if previous is not self._snapshot.state:
            logger.info("Transfer state %s -> %s", previous.value, self._snapshot.state.value)
        self._bus.publish(self._snapshot)
