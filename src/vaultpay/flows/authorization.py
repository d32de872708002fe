"""
EIP-3009 transfer authorization signing.

``AuthorizationSigner`` builds and signs exactly one
``TransferWithAuthorization`` per call. It never submits anything on-chain;
the signed authorization is handed to the relayer by the settlement flow.

The relayer fee is folded into the signed value: the relayer moves
``amount`` to the recipient and keeps ``fee`` from the same authorization.
"""

import logging
import os
import time
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, Union

from ..adapters.bases import ChainClient, TypedDataSigner
from ..adapters.evm.constants import (
    ProtocolSettings,
    format_amount,
    is_valid_address,
    round_to_integer,
)
from ..adapters.evm.schemas import TransferAuthorization
from ..adapters.evm.signers import build_transfer_typed_data, classify_signer_error, split_signature
from ..adapters.evm.standards import TRANSFER_WITH_AUTHORIZATION_TYPES
from ..engine.exceptions import (
    InsufficientBalance,
    InvalidAddress,
    InvalidInput,
    NotReady,
    VaultPayError,
)
from .validation import BalanceHint, parse_balance_hint, resolve_precision, validate_amount

logger = logging.getLogger(__name__)


def generate_nonce() -> str:
    """Fresh 256-bit random nonce as bytes32 hex."""
    return "0x" + os.urandom(32).hex()


class AuthorizationSigner:
    """
    Signs time-boxed, single-use transfer authorizations for ``token``.

    Attributes:
        last_authorization: The most recently produced authorization, kept
            for inspection only.

    Example:
        signer = AuthorizationSigner(chain, LocalAccountSigner(), contracts.token)
        auth = await signer.sign_transfer_authorization("0xRecipient...", "10")
        request = auth.to_payment_request()
    """

    def __init__(
        self,
        chain: ChainClient,
        signer: Optional[TypedDataSigner],
        token: str,
        settings: Optional[ProtocolSettings] = None,
        *,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = generate_nonce,
    ):
        self._chain = chain
        self._signer = signer
        self._token = token
        self._settings = settings or ProtocolSettings()
        self._clock = clock
        self._nonce_factory = nonce_factory
        self.last_authorization: Optional[TransferAuthorization] = None

    @property
    def fee(self) -> Decimal:
        return self._settings.transfer_fee

    def clear(self) -> None:
        """Discard the stored authorization."""
        self.last_authorization = None

    async def sign_transfer_authorization(
        self,
        recipient: str,
        amount: str,
        fee: Optional[Union[str, int, Decimal]] = None,
        known_balance: Optional[BalanceHint] = None,
    ) -> TransferAuthorization:
        """
        Build and sign one ``TransferWithAuthorization``.

        Args:
            recipient: Receiving address (0x + 40 hex digits).
            amount: Decimal amount string the recipient receives.
            fee: Relayer fee in whole tokens; defaults to the configured fee.
            known_balance: Optional balance that must cover ``amount + fee``.

        Returns:
            TransferAuthorization: Signed authorization with (v, r, s).

        Raises:
            InvalidAddress: Malformed recipient.
            InvalidInput: Malformed or non-positive amount.
            InsufficientBalance: ``amount + fee`` exceeds ``known_balance``.
            NotReady: No signer, or the token's domain cannot be read.
            UserRejected: The key holder declined to sign.
            SigningFailed: Any other signer failure.
        """
        if not is_valid_address(recipient):
            raise InvalidAddress(detail=f"recipient={recipient!r}")
        parsed = validate_amount(amount)

        try:
            fee_amount = self.fee if fee is None else Decimal(str(fee))
        except InvalidOperation as exc:
            raise InvalidInput("Invalid fee", detail=f"fee={fee!r}") from exc
        if not fee_amount.is_finite() or fee_amount < 0:
            raise InvalidInput("Fee must not be negative", detail=f"fee={fee!r}")
        total = parsed + fee_amount

        balance = parse_balance_hint(known_balance)
        if balance is not None and total > balance:
            raise InsufficientBalance(
                f"Insufficient balance (an extra {format_amount(fee_amount)} token fee is required)",
                detail={"required": str(total), "available": str(balance)},
            )

        if self._signer is None:
            raise NotReady("No signer available, please connect your wallet")

        decimals = await resolve_precision(self._chain, self._token, self._settings.fallback_precision)
        value = round_to_integer(amount=total, decimals=decimals)
        nonce = self._nonce_factory()
        valid_after = int(self._clock())
        valid_before = valid_after + self._settings.validity_window

        try:
            domain = await self._chain.get_domain_separator_params(self._token)
        except VaultPayError as exc:
            raise NotReady(
                "Token contract is not available on this network",
                detail=exc.detail or exc.message,
            ) from exc

        sender = self._signer.address
        typed_data = build_transfer_typed_data(
            domain,
            sender=sender,
            recipient=recipient,
            value=value,
            valid_after=valid_after,
            valid_before=valid_before,
            nonce=nonce,
        )
        message = typed_data.message.to_dict()
        logger.debug("EIP-712 domain: %s", domain.to_canonical_json())
        logger.debug("EIP-712 message: %s", message)

        try:
            signature = await self._signer.sign_typed_data(
                domain.to_dict(), TRANSFER_WITH_AUTHORIZATION_TYPES, message
            )
        except VaultPayError:
            raise
        except Exception as exc:
            raise classify_signer_error(exc) from exc
        logger.debug("Raw signature: %s", signature)

        components = split_signature(signature)
        authorization = TransferAuthorization(
            domain=domain,
            sender=sender,
            recipient=recipient,
            value=value,
            validAfter=valid_after,
            validBefore=valid_before,
            nonce=nonce,
            signature=signature,
            v=components.v,
            r=components.r,
            s=components.s,
        )
        self.last_authorization = authorization
        logger.info(
            "Signed transfer authorization to %s for %d units (nonce %s)",
            recipient, value, nonce,
        )
        return authorization
