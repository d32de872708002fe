"""
Protocol Flow Test Mocks Module

Mock collaborators and constants for testing the flows without a chain or a
relayer.

Key Components:
    - Deterministic test key, addresses and Sepolia contract registry
    - ``create_mock_chain``: ``Mock(spec=ChainClient)`` with AsyncMock reads
      and writes that record every submitted call
    - ``FakeRelayer``: scripted verify/settle responses with on-chain-like
      nonce consumption (a settled nonce cannot be settled again)
    - ``RecordingSleep``: stand-in for ``asyncio.sleep`` that records delays

Usage:
    from mocks import create_mock_chain, FakeRelayer, RecordingSleep

    chain = create_mock_chain(allowance=0)
    relayer = FakeRelayer(settle_script=[TransientNetwork("503")])
"""

import asyncio
from typing import Any, List, Optional
from unittest.mock import AsyncMock, Mock

from eth_account import Account
from web3 import AsyncWeb3

from vaultpay.adapters.bases import ChainClient
from vaultpay.adapters.evm.constants import get_chain_config
from vaultpay.schemas.relayer import DomainParams, PaymentRequest, SettleResponse, VerifyResponse
from vaultpay.schemas.transactions import ContractCall, TxReceipt


# ========================================================================
# Mock Constants
# ========================================================================

# Test private key (do not use in production!)
MOCK_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
MOCK_SENDER = AsyncWeb3.to_checksum_address(Account.from_key(MOCK_PRIVATE_KEY).address)
MOCK_RECIPIENT = "0x" + "ab" * 20

MOCK_CHAIN_ID = 11155111
MOCK_CONTRACTS = get_chain_config(MOCK_CHAIN_ID).contracts

MOCK_DOMAIN = DomainParams(
    name="Vault USD",
    version="1",
    chainId=MOCK_CHAIN_ID,
    verifyingContract=MOCK_CONTRACTS.token.lower(),
)

MOCK_TX_REFERENCE = "0xabc"


# ========================================================================
# Chain client
# ========================================================================

def create_mock_chain(
    *,
    allowance: Any = 0,
    precision: Any = 6,
    balance: Any = 0,
    domain: DomainParams = MOCK_DOMAIN,
    account: str = MOCK_SENDER,
) -> Mock:
    """
    Build a ``ChainClient`` mock.

    ``allowance``, ``precision`` and ``balance`` are used as return values;
    pass a list to script successive reads or an exception to make the read
    fail. ``chain.submitted`` collects every ``ContractCall`` and
    ``chain.confirmations`` every confirmation depth awaited.
    """
    chain = Mock(spec=ChainClient)
    chain.account_address = account
    chain.submitted = []
    chain.confirmations = []

    def _configure(mock: AsyncMock, value: Any) -> AsyncMock:
        if isinstance(value, (list, BaseException)) or (
            isinstance(value, type) and issubclass(value, BaseException)
        ):
            mock.side_effect = value
        else:
            mock.return_value = value
        return mock

    chain.get_allowance = _configure(AsyncMock(), allowance)
    chain.get_precision = _configure(AsyncMock(), precision)
    chain.get_balance = _configure(AsyncMock(), balance)
    chain.get_domain_separator_params = AsyncMock(return_value=domain)

    def _submit(call: ContractCall) -> TxReceipt:
        chain.submitted.append(call)
        return TxReceipt(tx_hash="0x" + format(len(chain.submitted), "064x"))

    def _confirm(receipt: TxReceipt, confirmations: int) -> TxReceipt:
        chain.confirmations.append(confirmations)
        return receipt.model_copy(update={"status": 1, "confirmations": confirmations})

    chain.submit_transaction = AsyncMock(side_effect=_submit)
    chain.await_confirmations = AsyncMock(side_effect=_confirm)
    return chain


def assert_no_chain_calls(chain: Mock) -> None:
    """Assert that nothing touched the ledger."""
    chain.get_precision.assert_not_awaited()
    chain.get_allowance.assert_not_awaited()
    chain.get_balance.assert_not_awaited()
    chain.get_domain_separator_params.assert_not_awaited()
    chain.submit_transaction.assert_not_awaited()
    assert chain.submitted == []


# ========================================================================
# Relayer
# ========================================================================

class FakeRelayer:
    """
    Scripted relayer.

    ``verify_response`` is returned (or raised) for every verify call.
    ``settle_script`` items are consumed one per settle call: an exception is
    raised, a response is returned. When the script is exhausted the relayer
    settles for real: the nonce is consumed and a second settle of the same
    nonce is rejected.
    """

    def __init__(
        self,
        verify_response: Any = None,
        settle_script: Optional[List[Any]] = None,
        tx_reference: str = MOCK_TX_REFERENCE,
    ):
        self.verify_response = verify_response or VerifyResponse(
            success=True, data={"isValid": True}
        )
        self.settle_script = list(settle_script or [])
        self.tx_reference = tx_reference
        self.verify_calls: List[PaymentRequest] = []
        self.settle_calls: List[PaymentRequest] = []
        self.used_nonces = set()

    async def verify(self, request: PaymentRequest) -> VerifyResponse:
        self.verify_calls.append(request)
        if isinstance(self.verify_response, BaseException):
            raise self.verify_response
        return self.verify_response

    async def settle(self, request: PaymentRequest) -> SettleResponse:
        self.settle_calls.append(request)
        if self.settle_script:
            item = self.settle_script.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item

        nonce = request.message.nonce
        if nonce in self.used_nonces:
            return SettleResponse(
                success=False,
                message="Authorization nonce already used",
                data={"reason": "nonce_used"},
            )
        self.used_nonces.add(nonce)
        return SettleResponse(success=True, data={"txReference": self.tx_reference})


class GatedRelayer(FakeRelayer):
    """FakeRelayer whose first verify call blocks until ``gate`` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.gate = asyncio.Event()
        self.first_verify_started = asyncio.Event()

    async def verify(self, request: PaymentRequest) -> VerifyResponse:
        if not self.verify_calls:
            self.verify_calls.append(request)
            self.first_verify_started.set()
            await self.gate.wait()
            return self.verify_response
        return await super().verify(request)


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` recording each delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
