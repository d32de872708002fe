"""
Abstract Base Classes for Protocol Collaborators

Defines the interfaces the protocol engines consume. The engines never touch
web3, eth_account or HTTP directly; concrete collaborators translate raw
library failures into ``vaultpay.engine.exceptions`` at this boundary.

Core Classes:
    - ChainClient: Ledger reads (precision, allowance, balance, EIP-712 domain),
      transaction submission and confirmation waiting
    - TypedDataSigner: Holds a key and produces EIP-712 typed-data signatures
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..schemas.relayer import DomainParams
from ..schemas.transactions import ContractCall, TxReceipt


class ChainClient(ABC):
    """
    Abstract read/write access to the remote ledger.

    Implementations must raise:
        - ``NotReady`` when no transaction-capable account is configured
        - ``UserRejected`` when the key holder declines a transaction
        - ``TransactionFailed`` for any submission or confirmation failure
    """

    @property
    @abstractmethod
    def account_address(self) -> str:
        """Address that owns balances and sends transactions."""
        pass

    @abstractmethod
    async def get_precision(self, asset: str) -> int:
        """Return ``decimals()`` of the ERC-20 at ``asset``."""
        pass

    @abstractmethod
    async def get_allowance(self, asset: str, owner: str, spender: str) -> int:
        """Return the allowance ``spender`` holds over ``owner``'s ``asset``."""
        pass

    @abstractmethod
    async def get_balance(self, asset: str, owner: str) -> int:
        """Return ``owner``'s balance of ``asset`` in smallest units."""
        pass

    @abstractmethod
    async def get_domain_separator_params(self, asset: str) -> DomainParams:
        """Return the EIP-712 domain the token at ``asset`` signs under."""
        pass

    @abstractmethod
    async def submit_transaction(self, call: ContractCall) -> TxReceipt:
        """
        Sign and broadcast ``call``.

        Returns:
            TxReceipt: Handle carrying at least the transaction hash.
        """
        pass

    @abstractmethod
    async def await_confirmations(self, receipt: TxReceipt, confirmations: int) -> TxReceipt:
        """
        Wait until the transaction is mined and buried under ``confirmations``
        blocks (the mining block counts as the first).

        Raises:
            TransactionFailed: If the transaction reverted or timed out.
        """
        pass


class TypedDataSigner(ABC):
    """
    Abstract EIP-712 signer.

    Implementations must raise ``UserRejected`` when the key holder declines
    and ``SigningFailed`` (carrying the original message) for anything else.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        """Address whose key produces the signatures."""
        pass

    @abstractmethod
    async def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: Dict[str, List[Dict[str, str]]],
        message: Dict[str, Any],
    ) -> str:
        """
        Sign an EIP-712 message.

        Args:
            domain: Domain separator fields.
            types: Type schema excluding ``EIP712Domain``.
            message: Message fields for the primary type.

        Returns:
            str: 0x-prefixed 65-byte signature.
        """
        pass
