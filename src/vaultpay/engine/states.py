"""
Transfer state machine.

``TransferSnapshot`` is an immutable view of one transfer and
``apply_event`` is the pure transition function over it:

    idle --BeginSigning--> signing --Signed--> verifying --Verified-->
    settling --Settled--> success

Any non-terminal state moves to ``error`` on ``FailedEvent``; ``ResetEvent``
returns every state to ``idle`` and discards the authorization and result.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..adapters.evm.schemas import TransferAuthorization
from ..schemas.relayer import SettlementResult
from .events import (
    BaseEvent,
    BeginSigningEvent,
    FailedEvent,
    ResetEvent,
    SettledEvent,
    SignedEvent,
    VerifiedEvent,
    event_name,
)
from .exceptions import InvalidTransition


class ProtocolState(str, Enum):
    """Client-visible state of a transfer."""

    IDLE = "idle"
    SIGNING = "signing"
    VERIFYING = "verifying"
    SETTLING = "settling"
    SUCCESS = "success"
    ERROR = "error"

    def is_terminal(self) -> bool:
        return self in (ProtocolState.SUCCESS, ProtocolState.ERROR)

    def is_in_flight(self) -> bool:
        return self in (ProtocolState.SIGNING, ProtocolState.VERIFYING, ProtocolState.SETTLING)


class TransferSnapshot(BaseModel):
    """
    Read-only view of a transfer.

    Attributes:
        state: Current protocol state.
        error: User-readable message of the last failure, if any.
        authorization: Last signed authorization (display only).
        tx_result: Settlement payload after success.
    """

    model_config = ConfigDict(frozen=True)

    state: ProtocolState = ProtocolState.IDLE
    error: Optional[str] = None
    authorization: Optional[TransferAuthorization] = None
    tx_result: Optional[SettlementResult] = None


IDLE_SNAPSHOT = TransferSnapshot()

# Happy-path transitions: (current state, event type) -> next state
_FORWARD = {
    (ProtocolState.IDLE, BeginSigningEvent): ProtocolState.SIGNING,
    (ProtocolState.SIGNING, SignedEvent): ProtocolState.VERIFYING,
    (ProtocolState.VERIFYING, VerifiedEvent): ProtocolState.SETTLING,
    (ProtocolState.SETTLING, SettledEvent): ProtocolState.SUCCESS,
}


def apply_event(snapshot: TransferSnapshot, event: BaseEvent) -> TransferSnapshot:
    """
    Compute the snapshot that follows ``event``.

    Args:
        snapshot: Current snapshot (never mutated).
        event: Event to apply.

    Returns:
        TransferSnapshot: New snapshot.

    Raises:
        InvalidTransition: If ``event`` is not allowed in ``snapshot.state``.
    """
    if isinstance(event, ResetEvent):
        return IDLE_SNAPSHOT

    if isinstance(event, FailedEvent):
        if snapshot.state.is_terminal():
            raise InvalidTransition(snapshot.state.value, event_name(event))
        return snapshot.model_copy(
            update={"state": ProtocolState.ERROR, "error": event.error_message}
        )

    next_state = _FORWARD.get((snapshot.state, type(event)))
    if next_state is None:
        raise InvalidTransition(snapshot.state.value, event_name(event))

    update = {"state": next_state, "error": None}
    if isinstance(event, SignedEvent):
        update["authorization"] = event.authorization
    elif isinstance(event, SettledEvent):
        update["tx_result"] = event.result
    return snapshot.model_copy(update=update)
