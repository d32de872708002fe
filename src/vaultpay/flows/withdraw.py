"""
Redeem flow: burn the wrapped token and withdraw the reserve asset.
"""

import logging
from typing import Optional

from ..adapters.bases import ChainClient
from ..adapters.evm.constants import ProtocolSettings, VaultContracts
from ..engine.exceptions import VaultPayError
from ..schemas.transactions import ContractCall, TxReceipt
from .validation import (
    BalanceHint,
    check_within_balance,
    resolve_precision,
    to_exact_value,
    validate_amount,
)

logger = logging.getLogger(__name__)


class WithdrawEngine:
    """
    Calls ``vault.burnAndWithdraw(value)`` for the connected account.

    Like ``AllowanceMintEngine``, ``withdraw`` returns a bool and records the
    typed error on ``error``.
    """

    def __init__(
        self,
        chain: ChainClient,
        contracts: VaultContracts,
        settings: Optional[ProtocolSettings] = None,
    ):
        self._chain = chain
        self._contracts = contracts
        self._settings = settings or ProtocolSettings()
        self.error: Optional[VaultPayError] = None
        self.decimals: int = self._settings.fallback_precision
        self.last_receipt: Optional[TxReceipt] = None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def reset(self) -> None:
        self.error = None
        self.last_receipt = None

    async def withdraw(self, amount: str, known_balance: Optional[BalanceHint] = None) -> bool:
        """
        Burn ``amount`` of the wrapped token and withdraw the reserve asset.

        Args:
            amount: Decimal amount string.
            known_balance: Optional wrapped-token balance the amount must not exceed.

        Returns:
            bool: Whether the withdrawal was confirmed.
        """
        self.error = None
        try:
            parsed = validate_amount(amount)
            check_within_balance(parsed, known_balance)
            owner = self._chain.account_address
            logger.debug("Withdrawing %s for %s", amount, owner)

            self.decimals = await resolve_precision(
                self._chain, self._contracts.token, self._settings.fallback_precision
            )
            value = to_exact_value(parsed, self.decimals)

            receipt = await self._chain.submit_transaction(ContractCall(
                contract=self._contracts.vault,
                function="burnAndWithdraw",
                args=[value],
                description=f"withdraw {amount}",
            ))
            self.last_receipt = await self._chain.await_confirmations(
                receipt, self._settings.write_confirmations
            )
        except VaultPayError as exc:
            self.error = exc
            logger.error("withdraw failed: %s (%s)", exc.message, exc.detail)
            return False

        logger.info("Withdrew %s (%d units): %s", amount, value, self.last_receipt.tx_hash)
        return True
