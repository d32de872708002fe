"""
EVM Adapter Schema Models

Pydantic models exchanged between the protocol engines and the EVM
collaborators.

Authorization classes:
    - AuthorizationSignature: Canonical ECDSA decomposition (v, r, s).
    - TransferAuthorization: One signed, single-use EIP-3009
      ``TransferWithAuthorization`` permission plus the domain it was signed
      under.
"""

from typing import Tuple

from pydantic import Field, field_validator, model_validator

from ...schemas.bases import CanonicalModel
from ...schemas.relayer import DomainParams, PaymentMessage, PaymentRequest


class AuthorizationSignature(CanonicalModel):
    """
    ECDSA signature in canonical (v, r, s) form.

    Attributes:
        v: Recovery ID (27 or 28).
        r: 32-byte r component as 0x-prefixed 64-char hex.
        s: 32-byte s component as 0x-prefixed 64-char hex.
    """

    v: int = Field(..., ge=27, le=28, description="ECDSA recovery ID (27 or 28)")
    r: str
    s: str

    @field_validator("r", "s")
    @classmethod
    def _check_component(cls, value: str) -> str:
        hex_str = value[2:] if value.lower().startswith("0x") else value
        if len(hex_str) != 64:
            raise ValueError(f"expected 64 hex chars, got {len(hex_str)}")
        try:
            int(hex_str, 16)
        except ValueError:
            raise ValueError("not valid hexadecimal")
        return "0x" + hex_str.lower()

    def to_packed_hex(self) -> str:
        """Encode into the packed 65-byte ``r || s || v`` hex form."""
        return "0x" + self.r[2:] + self.s[2:] + format(self.v, "02x")

    def as_tuple(self) -> Tuple[int, str, str]:
        return self.v, self.r, self.s


class TransferAuthorization(CanonicalModel):
    """
    Signed EIP-3009 ``TransferWithAuthorization`` permission.

    ``value`` already includes the relayer fee. The authorization is valid for
    ``validAfter <= now < validBefore`` and is consumed on-chain exactly once;
    the client never re-signs or resubmits it after a terminal outcome.

    Attributes:
        domain: EIP-712 domain the message was signed under.
        sender: Authorizing account (``from``).
        recipient: Receiving account (``to``).
        value: Amount in smallest units (fee included).
        validAfter: Start of validity (inclusive, unix seconds).
        validBefore: End of validity (exclusive, unix seconds).
        nonce: Random bytes32 hex nonce.
        signature: Raw 65-byte signature as returned by the signer.
        v, r, s: Canonical decomposition of ``signature``.
    """

    domain: DomainParams
    sender: str
    recipient: str
    value: int = Field(..., ge=0)
    validAfter: int = Field(..., ge=0)
    validBefore: int = Field(..., ge=0)
    nonce: str
    signature: str
    v: int = Field(..., ge=27, le=28)
    r: str
    s: str

    @model_validator(mode="after")
    def _check_window(self) -> "TransferAuthorization":
        if self.validAfter >= self.validBefore:
            raise ValueError(
                f"validAfter ({self.validAfter}) must be strictly less than "
                f"validBefore ({self.validBefore})"
            )
        return self

    @property
    def components(self) -> AuthorizationSignature:
        return AuthorizationSignature(v=self.v, r=self.r, s=self.s)

    def to_payment_request(self) -> PaymentRequest:
        """Build the ``{domain, message}`` body for the relayer endpoints."""
        return PaymentRequest(
            domain=self.domain,
            message=PaymentMessage(
                sender=self.sender,
                recipient=self.recipient,
                value=self.value,
                validAfter=self.validAfter,
                validBefore=self.validBefore,
                nonce=self.nonce,
                signature=self.signature,
            ),
        )
