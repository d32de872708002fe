"""
EVM Off-Chain Signing Utilities

Local EIP-712 signing for EIP-3009 ``TransferWithAuthorization``. All
cryptographic operations are performed in-process using ``eth_account``; no
RPC calls are made.

Exported helpers
----------------
LocalAccountSigner
    ``TypedDataSigner`` backed by a private key.

build_transfer_typed_data
    Wraps a domain and an unsigned message in an ``ERC3009TypedData``
    envelope without signing. Useful when the signing step is handled
    externally (e.g. a hardware wallet or MPC service).

split_signature
    Decomposes a packed 65-byte signature into canonical (v, r, s).

classify_signer_error
    Maps a raw signer failure to ``UserRejected`` or ``SigningFailed``.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from eth_account import Account
from web3 import AsyncWeb3

from ..bases import TypedDataSigner
from ...engine.exceptions import NotReady, SignatureError, SigningFailed, UserRejected
from ...schemas.relayer import DomainParams
from .constants import get_private_key_from_env
from .schemas import AuthorizationSignature
from .standards import (
    EIP712Domain,
    ERC3009TypedData,
    TransferWithAuthorizationMessage,
    build_full_typed_data,
)

logger = logging.getLogger(__name__)

_DECLINE_PATTERN = re.compile(r"user (rejected|denied)", re.IGNORECASE)


def classify_signer_error(exc: BaseException) -> SignatureError:
    """
    Map a raw signer failure into the signature error taxonomy.

    A decline by the key holder becomes ``UserRejected``; anything else
    becomes ``SigningFailed`` carrying the original message verbatim.
    """
    if isinstance(exc, SignatureError):
        return exc
    raw = str(exc)
    if _DECLINE_PATTERN.search(raw):
        return UserRejected(detail=raw)
    return SigningFailed(raw or None, detail=repr(exc))


def split_signature(signature: str) -> AuthorizationSignature:
    """
    Decompose a packed ``r || s || v`` signature.

    Recovery IDs of 0/1 (as produced by some wallets) are normalized to 27/28.

    Raises:
        SigningFailed: If ``signature`` is not 65 bytes of hex.
    """
    hex_str = signature[2:] if signature.lower().startswith("0x") else signature
    if len(hex_str) != 130:
        raise SigningFailed(f"Malformed signature: expected 65 bytes, got {len(hex_str) // 2}")
    try:
        v = int(hex_str[128:130], 16)
    except ValueError as exc:
        raise SigningFailed("Malformed signature: not valid hexadecimal") from exc
    if v < 27:
        v += 27
    try:
        return AuthorizationSignature(v=v, r="0x" + hex_str[:64], s="0x" + hex_str[64:128])
    except ValueError as exc:
        raise SigningFailed(f"Malformed signature: {exc}") from exc


def build_transfer_typed_data(
    domain: DomainParams,
    *,
    sender: str,
    recipient: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: str,
) -> ERC3009TypedData:
    """
    Wrap a ``TransferWithAuthorization`` message in an EIP-712 envelope
    without signing.

    Returns:
        ``ERC3009TypedData`` whose ``to_dict()`` is compatible with
        ``eth_account.sign_typed_data`` and ``eth_signTypedData_v4``.

    Example::

        typed_data = build_transfer_typed_data(
            domain,
            sender="0xYourAddress",
            recipient="0xRecipient",
            value=12_000_000,
            valid_after=now,
            valid_before=now + 900,
            nonce="0x" + os.urandom(32).hex(),
        )
        payload = typed_data.to_dict()   # hand off to external signer
    """
    return ERC3009TypedData(
        domain=EIP712Domain(
            name=domain.name,
            version=domain.version,
            chainId=domain.chainId,
            verifyingContract=domain.verifyingContract,
        ),
        message=TransferWithAuthorizationMessage(
            sender=sender,
            recipient=recipient,
            value=value,
            validAfter=valid_after,
            validBefore=valid_before,
            nonce=nonce,
        ),
    )


class LocalAccountSigner(TypedDataSigner):
    """
    EIP-712 signer holding a private key in-process.

    Example:
        signer = LocalAccountSigner(private_key="0x...")
        signature = await signer.sign_typed_data(domain, types, message)
    """

    def __init__(self, private_key: Optional[str] = None):
        """
        Args:
            private_key: Hex private key. Falls back to ``EVM_PRIVATE_KEY``.

        Raises:
            NotReady: If no key is available.
        """
        resolved_pk = private_key or get_private_key_from_env()
        if not resolved_pk:
            raise NotReady(
                "No wallet configured, please provide a private key",
                detail="Pass 'private_key' or set the EVM_PRIVATE_KEY environment variable",
            )
        self._account = Account.from_key(resolved_pk)

    @property
    def address(self) -> str:
        return AsyncWeb3.to_checksum_address(self._account.address)

    async def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: Dict[str, List[Dict[str, str]]],
        message: Dict[str, Any],
    ) -> str:
        full_message = build_full_typed_data(domain, types, message)
        try:
            signed = self._account.sign_typed_data(full_message=full_message)
        except Exception as exc:
            logger.error("Typed-data signing failed: %s", exc)
            raise classify_signer_error(exc) from exc
        return "0x" + bytes(signed.signature).hex()
