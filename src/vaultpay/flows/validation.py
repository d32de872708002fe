"""
Input validation and precision resolution shared by the flows.

Everything here runs before any signing or ledger write, so a rejected input
never has side effects.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from ..adapters.bases import ChainClient
from ..adapters.evm.constants import amount_to_value, is_valid_amount
from ..engine.exceptions import InvalidInput, VaultPayError

logger = logging.getLogger(__name__)

BalanceHint = Union[str, int, Decimal]


def validate_amount(amount: str) -> Decimal:
    """
    Parse a user-entered amount.

    Raises:
        InvalidInput: If ``amount`` is empty, malformed or not positive.
    """
    if not is_valid_amount(amount):
        raise InvalidInput(detail=f"amount={amount!r}")
    return Decimal(amount)


def parse_balance_hint(known_balance: Optional[BalanceHint]) -> Optional[Decimal]:
    """
    Parse an optional balance hint.

    Raises:
        InvalidInput: If the hint is present but not a number.
    """
    if known_balance is None:
        return None
    try:
        parsed = Decimal(str(known_balance))
    except InvalidOperation as exc:
        raise InvalidInput("Invalid balance value", detail=f"known_balance={known_balance!r}") from exc
    if not parsed.is_finite():
        raise InvalidInput("Invalid balance value", detail=f"known_balance={known_balance!r}")
    return parsed


def check_within_balance(amount: Decimal, known_balance: Optional[BalanceHint]) -> None:
    """
    Reject an amount above the supplied balance hint.

    Raises:
        InvalidInput: If ``amount`` exceeds ``known_balance``.
    """
    balance = parse_balance_hint(known_balance)
    if balance is not None and amount > balance:
        raise InvalidInput(
            "Amount exceeds the available balance",
            detail={"amount": str(amount), "available": str(balance)},
        )


def to_exact_value(amount: Decimal, decimals: int) -> int:
    """
    Convert to smallest units, rejecting sub-unit digits.

    Raises:
        InvalidInput: If the amount is not representable at ``decimals``.
    """
    try:
        return amount_to_value(amount=amount, decimals=decimals)
    except ValueError as exc:
        raise InvalidInput(
            f"Amount supports at most {decimals} decimal places",
            detail=str(exc),
        ) from exc


async def resolve_precision(chain: ChainClient, asset: str, fallback: int) -> int:
    """Read ``decimals()`` of ``asset``, falling back when the query fails."""
    try:
        return await chain.get_precision(asset)
    except VaultPayError as exc:
        logger.warning(
            "Could not read decimals of %s, using fallback precision %d: %s",
            asset, fallback, exc.detail or exc.message,
        )
        return fallback
