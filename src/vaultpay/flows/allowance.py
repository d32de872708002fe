"""
Approve-then-mint flow against the vault.

Step 1 ``approve`` grants the vault an allowance over the reserve asset;
step 2 ``mint`` has the vault pull that allowance and issue the wrapped
token. The engine tracks the grant as a two-state tag:

    Unapproved --approve(X) ok--> ApprovedFor(X) --mint(X) ok--> Unapproved
                                   |
                                   +--mint(Y != X) / allowance drained--> Unapproved

The on-chain allowance is always re-read before it is trusted.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..adapters.bases import ChainClient
from ..adapters.evm.constants import ProtocolSettings, VaultContracts
from ..engine.exceptions import (
    AllowanceRace,
    ApprovalRequired,
    VaultPayError,
)
from ..schemas.transactions import ContractCall
from .validation import (
    BalanceHint,
    check_within_balance,
    resolve_precision,
    to_exact_value,
    validate_amount,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unapproved:
    """No approval is recorded."""


@dataclass(frozen=True)
class ApprovedFor:
    """An approval for exactly ``amount`` (as entered) is recorded."""
    amount: str


ApprovalState = Union[Unapproved, ApprovedFor]


class AllowanceMintEngine:
    """
    Two-phase approve / mint client.

    ``approve`` and ``mint`` return ``True`` on success. On failure they
    return ``False`` and record the typed error on ``error`` (its readable
    text on ``error_message``).

    Example:
        engine = AllowanceMintEngine(chain, get_chain_config(11155111).contracts)
        if await engine.approve("100", known_balance=usdt_balance.balance):
            await engine.mint("100")
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
        self.approval: ApprovalState = Unapproved()
        self.error: Optional[VaultPayError] = None
        self.decimals: int = self._settings.fallback_precision

    @property
    def is_approved(self) -> bool:
        return isinstance(self.approval, ApprovedFor)

    @property
    def approved_amount(self) -> Optional[str]:
        return self.approval.amount if isinstance(self.approval, ApprovedFor) else None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def reset(self) -> None:
        """Forget any recorded approval and the last error."""
        self.approval = Unapproved()
        self.error = None

    async def approve(self, amount: str, known_balance: Optional[BalanceHint] = None) -> bool:
        """
        Ensure the vault may pull ``amount`` of the reserve asset.

        Skips the transaction when the current allowance already covers the
        amount. A non-zero but insufficient allowance is first reset to zero
        (one confirmation) before the new approval (two confirmations).

        Args:
            amount: Decimal amount string, e.g. ``"100.5"``.
            known_balance: Optional reserve balance the amount must not exceed.

        Returns:
            bool: Whether the vault is approved for ``amount``.
        """
        self.error = None
        try:
            parsed = validate_amount(amount)
            check_within_balance(parsed, known_balance)
            owner = self._chain.account_address

            reserve, vault = self._contracts.reserve, self._contracts.vault
            self.decimals = await resolve_precision(self._chain, reserve, self._settings.fallback_precision)
            value = to_exact_value(parsed, self.decimals)

            current = await self._chain.get_allowance(reserve, owner, vault)
            if current >= value:
                logger.info("Allowance %d already covers %d, skipping approve", current, value)
                self.approval = ApprovedFor(amount)
                return True

            if current > 0:
                logger.info("Resetting existing allowance %d to 0 before approving", current)
                receipt = await self._chain.submit_transaction(ContractCall(
                    contract=reserve,
                    function="approve",
                    args=[vault, 0],
                    description="reset allowance",
                ))
                await self._chain.await_confirmations(receipt, self._settings.reset_confirmations)

                # Another writer may have re-raised the allowance since the reset was mined
                current = await self._chain.get_allowance(reserve, owner, vault)
                if current != 0:
                    raise AllowanceRace(
                        "Allowance changed while it was being reset, please approve again",
                        detail={"allowance": current},
                    )

            receipt = await self._chain.submit_transaction(ContractCall(
                contract=reserve,
                function="approve",
                args=[vault, value],
                description=f"approve {amount}",
            ))
            await self._chain.await_confirmations(receipt, self._settings.write_confirmations)
        except VaultPayError as exc:
            return self._fail("approve", exc)

        self.approval = ApprovedFor(amount)
        logger.info("Approved vault for %s (%d units)", amount, value)
        return True

    async def mint(self, amount: str) -> bool:
        """
        Mint the wrapped token for exactly the approved ``amount``.

        A different amount than the recorded approval, or an on-chain
        allowance that has dropped below the amount, clears the approval and
        fails without submitting. A successful mint also clears it.

        Returns:
            bool: Whether the mint was confirmed.
        """
        self.error = None
        try:
            parsed = validate_amount(amount)
            owner = self._chain.account_address

            if not isinstance(self.approval, ApprovedFor):
                raise ApprovalRequired()
            if self.approval.amount != amount:
                self.approval = Unapproved()
                raise ApprovalRequired("Amount differs from the approved amount, please approve again")

            reserve, vault = self._contracts.reserve, self._contracts.vault
            self.decimals = await resolve_precision(self._chain, reserve, self._settings.fallback_precision)
            value = to_exact_value(parsed, self.decimals)

            current = await self._chain.get_allowance(reserve, owner, vault)
            if current < value:
                self.approval = Unapproved()
                raise AllowanceRace(detail={"allowance": current, "required": value})

            receipt = await self._chain.submit_transaction(ContractCall(
                contract=vault,
                function="mint",
                args=[value],
                description=f"mint {amount}",
            ))
            await self._chain.await_confirmations(receipt, self._settings.write_confirmations)
        except VaultPayError as exc:
            return self._fail("mint", exc)

        self.approval = Unapproved()
        logger.info("Minted %s (%d units)", amount, value)
        return True

    def _fail(self, operation: str, exc: VaultPayError) -> bool:
        self.error = exc
        logger.error("%s failed: %s (%s)", operation, exc.message, exc.detail)
        return False
