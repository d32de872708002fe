"""
Exception and Error Definitions Module

Defines the error taxonomy shared by the allowance/mint engine, the
authorization signer and the settlement coordinator. Collaborator boundaries
(chain client, signer, relayer client) translate raw library failures into
these types so that business logic never inspects arbitrary exception text.

Every error carries a stable, user-readable ``message``. Raw collaborator
detail (RPC payloads, HTTP bodies, stack context) is kept in ``detail`` and is
meant for diagnostic logging only.

Exception Hierarchy:
    VaultPayError (root)
    ├── ValidationError
    │   ├── InvalidInput
    │   ├── InvalidAddress
    │   ├── InsufficientBalance
    │   └── MissingInput
    ├── NotReady
    ├── SignatureError
    │   ├── UserRejected
    │   └── SigningFailed
    ├── RelayerError
    │   ├── TransientNetwork
    │   └── BusinessRejected
    ├── TransactionFailed
    ├── AllowanceError
    │   ├── AllowanceRace
    │   └── ApprovalRequired
    └── InvalidTransition
"""

from typing import Any, Optional


class VaultPayError(Exception):
    """
    Root exception class for all project-specific exceptions.

    Attributes:
        message: Human-readable message safe to show to the end user.
        detail: Optional raw diagnostic information (never shown to users).
    """

    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None, *, detail: Any = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(VaultPayError):
    """
    Base class for input errors detected before any network or signing call.
    """

    default_message = "Invalid input"


class InvalidInput(ValidationError):
    """
    Raised when an amount is malformed, non-positive, not representable in
    the token's precision, or exceeds a supplied balance hint.
    """

    default_message = "Please enter a valid positive amount"


class InvalidAddress(ValidationError):
    """
    Raised when a recipient is not a 0x-prefixed, 40-hex-digit address.
    """

    default_message = "Please enter a valid wallet address"


class InsufficientBalance(ValidationError):
    """
    Raised when amount plus the relayer fee exceeds the supplied balance hint.
    ``detail`` holds the required and available amounts as decimal strings.
    """

    default_message = "Insufficient balance"


class MissingInput(ValidationError):
    """
    Raised when a transfer request lacks its recipient or amount.
    """

    default_message = "Please provide a recipient address and an amount"


class NotReady(VaultPayError):
    """
    Raised when the signer or a remote contract handle is unavailable.

    This includes scenarios such as:
    - No wallet/private key configured
    - Contracts not deployed on the connected chain
    - Chain client not configured for transaction submission
    """

    default_message = "Wallet or contracts are not ready, please connect your wallet"


class SignatureError(VaultPayError):
    """
    Base exception for typed-data signing failures.
    """

    default_message = "Signing failed, please try again later"


class UserRejected(SignatureError):
    """
    Raised when the key holder declines to sign or to send a transaction.
    """

    default_message = "Request was cancelled by the user"


class SigningFailed(SignatureError):
    """
    Raised for any other signer error; ``message`` carries the signer's
    original text verbatim.
    """

    default_message = "Signing failed, please try again later"


class RelayerError(VaultPayError):
    """
    Base exception for failures reported by, or while talking to, the relayer.
    """

    default_message = "Relayer request failed"


class TransientNetwork(RelayerError):
    """
    Raised when the relayer could not be reached, answered with a non-2xx
    status, or returned a body without a definitive outcome. Retried by the
    settle step only.

    Attributes:
        status_code: HTTP status code when a response was received.
    """

    default_message = "Network error while contacting the relayer"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        detail: Any = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, detail=detail)
        self.status_code = status_code


class BusinessRejected(RelayerError):
    """
    Raised when the relayer explicitly rejects an authorization (expired
    window, nonce already used, insufficient funds, malformed payload).
    Never retried.
    """

    default_message = "The relayer rejected the authorization"


class TransactionFailed(VaultPayError):
    """
    Raised when an on-chain submission or confirmation fails.

    This includes scenarios such as:
    - Transaction reverted on-chain
    - Insufficient native balance for gas
    - Nonce conflicts
    - Confirmation timeout

    Attributes:
        tx_hash: Transaction hash if one was broadcast.
    """

    default_message = "Transaction failed, please try again later"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        detail: Any = None,
        tx_hash: Optional[str] = None,
    ):
        super().__init__(message, detail=detail)
        self.tx_hash = tx_hash


class AllowanceError(VaultPayError):
    """
    Base exception for approval bookkeeping failures in the mint path.
    """

    default_message = "Approval is no longer valid, please approve again"


class AllowanceRace(AllowanceError):
    """
    Raised when the on-chain allowance is observed insufficient at mint time
    despite a prior approval.
    """

    default_message = "On-chain allowance is insufficient, please approve again"


class ApprovalRequired(AllowanceError):
    """
    Raised when mint is requested without an approval for the exact amount.
    """

    default_message = "Please complete the approval step first"


class InvalidTransition(VaultPayError):
    """
    Raised when a transfer state machine receives an event that is not valid
    for its current state.

    Attributes:
        current_state: State the machine was in.
        event_type: Name of the rejected event.
    """

    default_message = "Invalid protocol state transition"

    def __init__(self, current_state: Any, event_type: str):
        super().__init__(
            f"Event {event_type} is not allowed in state {current_state}",
            detail={"current_state": str(current_state), "event_type": event_type},
        )
        self.current_state = current_state
        self.event_type = event_type
