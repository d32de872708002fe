"""
EVM Chain Client Tests

``Web3ChainClient`` is exercised against a stubbed ``AsyncWeb3`` so no RPC
endpoint is needed; error classification is tested directly.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted

from vaultpay.adapters.evm.chain import Web3ChainClient, classify_chain_error
from vaultpay.engine.exceptions import NotReady, TransactionFailed, UserRejected
from vaultpay.schemas.transactions import ContractCall, TxReceipt

MOCK_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
MOCK_ADDRESS = AsyncWeb3.to_checksum_address(Account.from_key(MOCK_PRIVATE_KEY).address)
TOKEN = "0x" + "11" * 20
TX_HASH = "0x" + "aa" * 32


class FakeEth:
    """Minimal ``web3.eth`` with scripted block numbers."""

    def __init__(self, blocks=(100,), receipt=None):
        self._blocks = list(blocks)
        self.contract = Mock()
        self.wait_for_transaction_receipt = AsyncMock(
            return_value=receipt or {"status": 1, "blockNumber": 100, "gasUsed": 21000}
        )
        self.get_transaction_count = AsyncMock(return_value=7)

    @property
    def block_number(self):
        async def _next():
            return self._blocks.pop(0) if len(self._blocks) > 1 else self._blocks[0]
        return _next()


def create_client(eth=None, private_key=MOCK_PRIVATE_KEY, **kwargs) -> Web3ChainClient:
    web3 = Mock()
    web3.eth = eth or FakeEth()
    kwargs.setdefault("poll_interval", 0)
    return Web3ChainClient(web3=web3, private_key=private_key, **kwargs)


class TestClassifyChainError:

    @pytest.mark.parametrize("raw,message", [
        ("insufficient funds for gas * price + value", "Insufficient ETH to pay for gas"),
        ("ERC20: transfer amount exceeds balance", "Insufficient token balance"),
        ("execution reverted: NotAllowedToBurn()", "This account is not allowed to withdraw"),
        ("nonce too low", "Transaction nonce error, please refresh and retry"),
        ("request timed out", "Transaction timed out, please try again later"),
        ("Connection aborted", "Network connection error, please check your network and retry"),
        ("execution reverted", "Fallback message"),
    ])
    def test_known_patterns(self, raw, message):
        error = classify_chain_error(ValueError(raw), "Fallback message")

        assert isinstance(error, TransactionFailed)
        assert error.message == message
        assert error.detail == raw

    def test_user_rejection(self):
        error = classify_chain_error(Exception("User denied transaction signature"), "x")

        assert isinstance(error, UserRejected)

    def test_time_exhausted(self):
        error = classify_chain_error(TimeExhausted(), "x")

        assert error.message == "Transaction timed out, please try again later"

    def test_typed_errors_pass_through(self):
        original = NotReady()

        assert classify_chain_error(original, "x") is original


class TestReads:

    @pytest.mark.asyncio
    async def test_domain_separator_params(self):
        client = create_client()
        contract = client.web3.eth.contract.return_value
        contract.functions.eip712Domain.return_value.call = AsyncMock(
            return_value=(b"\x0f", "Vault USD", "1", 11155111, TOKEN, b"\x00" * 32, [])
        )

        domain = await client.get_domain_separator_params(TOKEN)

        assert domain.name == "Vault USD"
        assert domain.version == "1"
        assert domain.chainId == 11155111
        assert domain.verifyingContract == AsyncWeb3.to_checksum_address(TOKEN)

    @pytest.mark.asyncio
    async def test_read_failure_is_classified(self):
        client = create_client()
        contract = client.web3.eth.contract.return_value
        contract.functions.decimals.return_value.call = AsyncMock(
            side_effect=ValueError("execution reverted")
        )

        with pytest.raises(TransactionFailed) as exc_info:
            await client.get_precision(TOKEN)

        assert exc_info.value.message == "Failed to read token decimals"

    @pytest.mark.asyncio
    async def test_allowance(self):
        client = create_client()
        contract = client.web3.eth.contract.return_value
        contract.functions.allowance.return_value.call = AsyncMock(return_value=5_000000)

        assert await client.get_allowance(TOKEN, MOCK_ADDRESS, TOKEN) == 5_000000


class TestWrites:

    def test_account_requires_key(self, monkeypatch):
        monkeypatch.delenv("EVM_PRIVATE_KEY", raising=False)
        client = create_client(private_key=None)

        with pytest.raises(NotReady):
            client.account_address

    @pytest.mark.asyncio
    async def test_submit_requires_key(self, monkeypatch):
        monkeypatch.delenv("EVM_PRIVATE_KEY", raising=False)
        client = create_client(private_key=None)

        with pytest.raises(NotReady):
            await client.submit_transaction(ContractCall(contract=TOKEN, function="approve", args=[TOKEN, 0]))

    @pytest.mark.asyncio
    async def test_submit_failure_is_classified(self):
        eth = FakeEth()
        eth.get_transaction_count = AsyncMock(
            side_effect=ValueError("insufficient funds for gas * price + value")
        )
        client = create_client(eth)

        with pytest.raises(TransactionFailed) as exc_info:
            await client.submit_transaction(ContractCall(contract=TOKEN, function="approve", args=[TOKEN, 0]))

        assert exc_info.value.message == "Insufficient ETH to pay for gas"


class TestConfirmations:

    @pytest.mark.asyncio
    async def test_waits_for_depth(self):
        client = create_client(FakeEth(blocks=[100, 100, 101]))

        receipt = await client.await_confirmations(TxReceipt(tx_hash=TX_HASH), 2)

        assert receipt.confirmations == 2
        assert receipt.block_number == 100
        assert receipt.status == 1
        assert receipt.gas_used == 21000

    @pytest.mark.asyncio
    async def test_reverted_transaction(self):
        client = create_client(FakeEth(receipt={"status": 0, "blockNumber": 100}))

        with pytest.raises(TransactionFailed) as exc_info:
            await client.await_confirmations(TxReceipt(tx_hash=TX_HASH), 1)

        assert exc_info.value.message == "Transaction reverted on-chain"
        assert exc_info.value.tx_hash == TX_HASH

    @pytest.mark.asyncio
    async def test_receipt_timeout(self):
        eth = FakeEth()
        eth.wait_for_transaction_receipt = AsyncMock(side_effect=TimeExhausted("not mined"))
        client = create_client(eth)

        with pytest.raises(TransactionFailed) as exc_info:
            await client.await_confirmations(TxReceipt(tx_hash=TX_HASH), 1)

        assert exc_info.value.message == "Transaction timed out, please try again later"
        assert exc_info.value.tx_hash == TX_HASH

    @pytest.mark.asyncio
    async def test_depth_timeout(self):
        client = create_client(FakeEth(blocks=[100]), confirmation_timeout=0)

        with pytest.raises(TransactionFailed) as exc_info:
            await client.await_confirmations(TxReceipt(tx_hash=TX_HASH), 3)

        assert exc_info.value.detail == "1/3 confirmations"
