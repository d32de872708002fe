"""
Typed transfer events and the snapshot bus.

Events carry their own data and are the only way a transfer snapshot
changes: the coordinator builds an event, ``apply_event`` folds it into a new
snapshot, and the ``StateBus`` hands that snapshot to every subscriber.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict

from pydantic import BaseModel

from ..adapters.evm.schemas import TransferAuthorization
from ..schemas.relayer import SettlementResult

if TYPE_CHECKING:
    from .states import TransferSnapshot

logger = logging.getLogger(__name__)


# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all transfer events."""

    @abstractmethod
    def __repr__(self) -> str:
        """String representation of the event."""
        pass


# ==================== Flow Events ====================

class BeginSigningEvent(BaseModel, BaseEvent):
    """Trigger: a transfer request passed input validation."""
    recipient: str
    amount: str

    def __repr__(self) -> str:
        return f"BeginSigningEvent(recipient={self.recipient}, amount={self.amount})"


class SignedEvent(BaseModel, BaseEvent):
    """Result: the authorization was signed and is about to be verified."""
    authorization: TransferAuthorization

    def __repr__(self) -> str:
        return f"SignedEvent(nonce={self.authorization.nonce})"


class VerifiedEvent(BaseModel, BaseEvent):
    """Result: the relayer accepted the authorization; settlement starts."""

    def __repr__(self) -> str:
        return "VerifiedEvent()"


class SettledEvent(BaseModel, BaseEvent):
    """Result: the relayer settled the authorization on-chain."""
    result: SettlementResult

    def __repr__(self) -> str:
        return f"SettledEvent(tx_hash={self.result.tx_hash})"


class FailedEvent(BaseModel, BaseEvent):
    """Result: the current step failed with a user-readable message."""
    error_message: str

    def __repr__(self) -> str:
        return f"FailedEvent(error={self.error_message})"


class ResetEvent(BaseModel, BaseEvent):
    """Trigger: discard the current transfer and return to idle."""

    def __repr__(self) -> str:
        return "ResetEvent()"


# ==================== State Bus ====================

SnapshotCallback = Callable[["TransferSnapshot"], None]


class StateBus:
    """Publishes transfer snapshots to subscribed callbacks."""

    def __init__(self) -> None:
        self._subscribers: Dict[int, SnapshotCallback] = {}
        self._next_id = 0

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Register a synchronous callback invoked with every new snapshot.

        Callbacks run inline during a transition, so they must not block and
        cannot be coroutine functions.

        Args:
            callback: Callable receiving the new ``TransferSnapshot``.

        Returns:
            A function that removes the subscription.

        Raises:
            TypeError: If callback is a coroutine function or not callable.
        """
        if inspect.iscoroutinefunction(callback):
            raise TypeError("Snapshot callbacks must be synchronous callables")
        if not callable(callback):
            raise TypeError(f"Callback must be callable, got {type(callback).__name__}")

        subscription_id = self._next_id
        self._next_id += 1
        self._subscribers[subscription_id] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(subscription_id, None)

        return unsubscribe

    def publish(self, snapshot: "TransferSnapshot") -> None:
        """
        Deliver ``snapshot`` to every subscriber in registration order.

        A failing subscriber is logged and does not prevent delivery to the
        others or abort the transition.
        """
        for callback in list(self._subscribers.values()):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber %r raised", callback)

    def __len__(self) -> int:
        return len(self._subscribers)


def event_name(event: BaseEvent) -> str:
    return type(event).__name__
