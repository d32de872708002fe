"""
Relayer Wire Schemas

Pydantic models for the two relayer endpoints:

    POST /payment/verify
    POST /payment/settle

Both endpoints accept the same ``PaymentRequest`` body (``{domain, message}``)
and answer with ``{success, message?, data?}``. Responses are parsed leniently
(unknown fields are kept) because the relayer is free to add diagnostics.

Core Classes:
    - DomainParams: EIP-712 domain the authorization was signed under
    - PaymentMessage: Signed authorization fields plus the packed signature
    - PaymentRequest: Request body shared by verify and settle
    - RelayerResponse: Generic response envelope
    - VerifyResponse / SettleResponse: Endpoint-specific envelopes
    - SettlementResult: Settlement payload returned on success
    - SettlementAttempt: One try of the settle exchange
"""

from typing import Any, Dict, Optional

from pydantic import AliasChoices, ConfigDict, Field, field_serializer

from .bases import AttemptOutcome, CanonicalModel


class DomainParams(CanonicalModel):
    """EIP-712 domain parameters a token signs under (EIP-5267 `eip712Domain()`)."""

    name: str
    version: str
    chainId: int = Field(..., ge=1)
    verifyingContract: str


class PaymentMessage(CanonicalModel):
    """
    Signed transfer authorization as sent to the relayer.

    ``value`` is serialized as a decimal string so that uint256 amounts
    survive JSON parsers that coerce numbers to doubles.
    """

    sender: str = Field(..., description="Authorizing account (EIP-3009 `from`)")
    recipient: str = Field(..., description="Receiving account (EIP-3009 `to`)")
    value: int = Field(..., ge=0, description="Amount in smallest units, fee included")
    validAfter: int = Field(..., ge=0)
    validBefore: int = Field(..., ge=0)
    nonce: str = Field(..., description="bytes32 hex nonce")
    signature: str = Field(..., description="Packed 65-byte signature (r || s || v)")

    @field_serializer("value")
    def _serialize_value(self, value: int) -> str:
        return str(value)


class PaymentRequest(CanonicalModel):
    """Request body for both ``/payment/verify`` and ``/payment/settle``."""

    domain: DomainParams
    message: PaymentMessage


class RelayerResponse(CanonicalModel):
    """
    Response envelope shared by the relayer endpoints.

    Attributes:
        success: Outcome flag. ``None`` means the body carried no definitive
            outcome, which the settle step treats as transient.
        message: Optional human-readable explanation from the relayer.
        data: Optional endpoint-specific payload.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    success: Optional[bool] = None
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def is_definitive(self) -> bool:
        """True when the relayer stated an explicit success or failure."""
        return self.success is not None

    def is_business_failure(self) -> bool:
        """True when the relayer explicitly rejected the request."""
        return self.success is False


class VerifyResponse(RelayerResponse):
    """Envelope for ``/payment/verify``; ``data.isValid`` may veto success."""

    def is_valid(self) -> bool:
        if self.success is not True:
            return False
        if self.data is not None and self.data.get("isValid") is False:
            return False
        return True


class SettleResponse(RelayerResponse):
    """Envelope for ``/payment/settle``."""


class SettlementResult(CanonicalModel):
    """
    Settlement payload kept after a successful settle.

    The relayer reports the transaction reference as either ``txHash`` or
    ``txReference``; both populate ``tx_hash``. Any additional fields are
    preserved for display.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    tx_hash: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("txHash", "txReference", "tx_hash"),
        serialization_alias="txHash",
    )

    @classmethod
    def from_response(cls, response: RelayerResponse) -> "SettlementResult":
        return cls.model_validate(response.data or {})


class SettlementAttempt(CanonicalModel):
    """One try of the settle exchange. Ephemeral, never persisted."""

    attempt: int = Field(..., ge=1)
    outcome: AttemptOutcome
    response: Optional[RelayerResponse] = None
    error_message: Optional[str] = None
