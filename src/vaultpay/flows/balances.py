"""
Cached token balance of the connected account.

The transfer flow uses the cached value as the signer's balance hint and
refreshes it after every successful settlement.
"""

import logging
from decimal import Decimal
from typing import Optional

from ..adapters.bases import ChainClient
from ..adapters.evm.constants import FALLBACK_PRECISION, format_amount, value_to_amount
from ..engine.exceptions import VaultPayError

logger = logging.getLogger(__name__)


class TokenBalance:
    """
    Balance of ``asset`` held by ``owner`` (the chain client's account when
    omitted), formatted as a decimal string.

    Attributes:
        balance: Formatted balance, ``"0"`` until loaded or after a failure.
        raw_balance: Balance in smallest units, ``None`` until loaded.
        decimals: Token precision from the last successful read.
    """

    def __init__(self, chain: ChainClient, asset: str, owner: Optional[str] = None):
        self._chain = chain
        self._asset = asset
        self._owner = owner
        self.balance: str = "0"
        self.raw_balance: Optional[int] = None
        self.decimals: int = FALLBACK_PRECISION

    @property
    def is_loaded(self) -> bool:
        return self.raw_balance is not None

    @property
    def amount(self) -> Decimal:
        return Decimal(self.balance)

    async def refresh(self) -> str:
        """
        Re-read balance and precision.

        Failures are logged and reset the cache to ``"0"``; they never
        propagate.
        """
        try:
            owner = self._owner or self._chain.account_address
            raw = await self._chain.get_balance(self._asset, owner)
            decimals = await self._chain.get_precision(self._asset)
        except VaultPayError as exc:
            logger.warning("Failed to refresh balance of %s: %s", self._asset, exc.detail or exc.message)
            self.balance = "0"
            self.raw_balance = None
            return self.balance

        self.raw_balance = raw
        self.decimals = decimals
        self.balance = format_amount(value_to_amount(value=raw, decimals=decimals))
        logger.debug("Balance of %s for %s: %s", self._asset, owner, self.balance)
        return self.balance
