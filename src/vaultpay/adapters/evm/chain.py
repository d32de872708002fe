"""
EVM Chain Client

``ChainClient`` implementation over ``web3.AsyncWeb3`` with a local
``eth_account`` key for transaction signing.

Key Features:
    - ERC-20 reads: ``decimals``, ``allowance``, ``balanceOf``
    - EIP-5267 ``eip712Domain()`` read for the transfer authorization domain
    - Generic contract call submission with gas estimation and EIP-1559 fees
      (legacy gas price fallback)
    - Confirmation waiting by receipt plus block-depth polling
    - Raw web3 / RPC failures classified into the protocol error taxonomy

Dependencies:
    - web3.py: For blockchain RPC interaction
    - eth_account: For local transaction signing
"""

import asyncio
import logging
import time
from typing import Any, Optional

from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted

from ..bases import ChainClient
from ...engine.exceptions import NotReady, TransactionFailed, UserRejected, VaultPayError
from ...schemas.relayer import DomainParams
from ...schemas.transactions import ContractCall, TxReceipt
from .abis import get_abi_for_function, get_erc20_abi
from .constants import get_private_key_from_env, get_rpc_url_from_env

logger = logging.getLogger(__name__)

#: Gas limit used when estimation fails (common when balances are zero).
_FALLBACK_GAS_LIMIT = 200000


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

def classify_chain_error(exc: BaseException, default_message: str) -> VaultPayError:
    """
    Translate a raw web3 / RPC / wallet failure into the error taxonomy.

    Matching is done once here, on the lowercased error text, so that the
    engines only ever see typed errors.

    Args:
        exc: The raw exception.
        default_message: Message used when no known pattern matches.

    Returns:
        VaultPayError: ``UserRejected`` or ``TransactionFailed`` with a
        readable message; ``detail`` keeps the raw text.
    """
    if isinstance(exc, VaultPayError):
        return exc

    raw = str(exc)
    message = raw.lower()
    tx_hash = getattr(exc, "tx_hash", None)

    if "user rejected" in message or "user denied" in message:
        return UserRejected("Transaction was cancelled by the user", detail=raw)
    if "insufficient funds for gas" in message:
        readable = "Insufficient ETH to pay for gas"
    elif "insufficient" in message or "balance" in message:
        readable = "Insufficient token balance"
    elif "notallowedtoburn" in message:
        readable = "This account is not allowed to withdraw"
    elif "nonce" in message:
        readable = "Transaction nonce error, please refresh and retry"
    elif isinstance(exc, (TimeExhausted, asyncio.TimeoutError)) or "timeout" in message or "timed out" in message:
        readable = "Transaction timed out, please try again later"
    elif "network" in message or "connection" in message:
        readable = "Network connection error, please check your network and retry"
    else:
        readable = default_message

    return TransactionFailed(readable, detail=raw, tx_hash=tx_hash)


# ---------------------------------------------------------------------------
# Chain client
# ---------------------------------------------------------------------------

class Web3ChainClient(ChainClient):
    """
    AsyncWeb3-backed ledger access.

    Reads work without a key; ``submit_transaction`` and ``account_address``
    require one and raise ``NotReady`` otherwise.

    Example:
        client = Web3ChainClient(rpc_url="https://rpc.sepolia.org", private_key="0x...")
        decimals = await client.get_precision(reserve_address)
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        private_key: Optional[str] = None,
        *,
        web3: Optional[AsyncWeb3] = None,
        request_timeout: int = 60,
        confirmation_timeout: float = 180.0,
        poll_interval: float = 2.0,
    ):
        """
        Initialize the client.

        Args:
            rpc_url: JSON-RPC endpoint. Falls back to ``EVM_RPC_URL``.
            private_key: Transaction signing key. Falls back to ``EVM_PRIVATE_KEY``.
            web3: Pre-built AsyncWeb3 instance (takes precedence over rpc_url).
            request_timeout: HTTP timeout for RPC calls, in seconds.
            confirmation_timeout: Upper bound on waiting for confirmations.
            poll_interval: Seconds between receipt and block polls.

        Raises:
            NotReady: If neither ``web3`` nor an RPC URL is available.
        """
        if web3 is None:
            resolved_url = rpc_url or get_rpc_url_from_env()
            if not resolved_url:
                raise NotReady(
                    "No RPC endpoint configured",
                    detail="Pass 'rpc_url' or set the EVM_RPC_URL environment variable",
                )
            web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                resolved_url,
                request_kwargs={"timeout": request_timeout},
            ))
        self.web3 = web3

        resolved_pk = private_key or get_private_key_from_env()
        self._account = Account.from_key(resolved_pk) if resolved_pk else None
        self._confirmation_timeout = confirmation_timeout
        self._poll_interval = poll_interval

    @property
    def account_address(self) -> str:
        if self._account is None:
            raise NotReady("No wallet configured, please provide a private key")
        return AsyncWeb3.to_checksum_address(self._account.address)

    def _contract(self, asset: str, abi: Any):
        return self.web3.eth.contract(address=AsyncWeb3.to_checksum_address(asset), abi=abi)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_precision(self, asset: str) -> int:
        try:
            return int(await self._contract(asset, get_erc20_abi()).functions.decimals().call())
        except Exception as exc:
            raise classify_chain_error(exc, "Failed to read token decimals") from exc

    async def get_allowance(self, asset: str, owner: str, spender: str) -> int:
        try:
            contract = self._contract(asset, get_erc20_abi())
            return int(await contract.functions.allowance(
                AsyncWeb3.to_checksum_address(owner),
                AsyncWeb3.to_checksum_address(spender),
            ).call())
        except Exception as exc:
            raise classify_chain_error(exc, "Failed to read allowance") from exc

    async def get_balance(self, asset: str, owner: str) -> int:
        try:
            contract = self._contract(asset, get_erc20_abi())
            return int(await contract.functions.balanceOf(
                AsyncWeb3.to_checksum_address(owner)
            ).call())
        except Exception as exc:
            raise classify_chain_error(exc, "Failed to read balance") from exc

    async def get_domain_separator_params(self, asset: str) -> DomainParams:
        try:
            # (fields, name, version, chainId, verifyingContract, salt, extensions)
            result = await self._contract(asset, get_erc20_abi()).functions.eip712Domain().call()
        except Exception as exc:
            raise classify_chain_error(exc, "Failed to read the token's EIP-712 domain") from exc

        return DomainParams(
            name=result[1],
            version=result[2],
            chainId=int(result[3]),
            verifyingContract=AsyncWeb3.to_checksum_address(result[4]),
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def submit_transaction(self, call: ContractCall) -> TxReceipt:
        """
        Build, sign and broadcast ``call`` from the configured account.

        Gas is estimated with a 10% buffer (fixed fallback when estimation
        fails); fees use EIP-1559 from ``fee_history`` with a legacy gas price
        fallback.
        """
        if self._account is None:
            raise NotReady("No wallet configured, please provide a private key")

        sender = self.account_address
        contract = self._contract(call.contract, get_abi_for_function(call.function))
        function = getattr(contract.functions, call.function)(*call.args)

        try:
            nonce = await self.web3.eth.get_transaction_count(sender)
            chain_id = await self.web3.eth.chain_id
            tx_params = {
                "chainId": chain_id,
                "from": sender,
                "nonce": nonce,
            }

            try:
                gas_estimate = await function.estimate_gas({"from": sender})
                tx_params["gas"] = int(gas_estimate * 1.1)
            except Exception as exc:
                logger.warning("Gas estimation failed for %s, using fallback limit: %s", call.label(), exc)
                tx_params["gas"] = _FALLBACK_GAS_LIMIT

            try:
                fee_history = await self.web3.eth.fee_history(1, "latest", [25.0])
                base_fee = fee_history["baseFeePerGas"][-1]
                priority_fee = fee_history["reward"][0][0]
                tx_params["maxPriorityFeePerGas"] = priority_fee
                tx_params["maxFeePerGas"] = (base_fee * 2) + priority_fee
            except Exception:
                tx_params["gasPrice"] = await self.web3.eth.gas_price

            transaction = await function.build_transaction(tx_params)
            signed_tx = self._account.sign_transaction(transaction)
            tx_hash = await self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except Exception as exc:
            logger.error("Failed to submit %s: %s", call.label(), exc)
            raise classify_chain_error(exc, "Transaction failed, please try again later") from exc

        tx_hex = AsyncWeb3.to_hex(tx_hash)
        logger.info("Submitted %s: %s", call.label(), tx_hex)
        return TxReceipt(tx_hash=tx_hex)

    async def await_confirmations(self, receipt: TxReceipt, confirmations: int) -> TxReceipt:
        deadline = time.monotonic() + self._confirmation_timeout
        try:
            mined = await self.web3.eth.wait_for_transaction_receipt(
                receipt.tx_hash,
                timeout=self._confirmation_timeout,
                poll_latency=self._poll_interval,
            )
        except Exception as exc:
            error = classify_chain_error(exc, "Transaction confirmation failed")
            if isinstance(error, TransactionFailed):
                error.tx_hash = receipt.tx_hash
            raise error from exc

        if mined.get("status") == 0:
            logger.error("Transaction %s reverted on-chain", receipt.tx_hash)
            raise TransactionFailed("Transaction reverted on-chain", tx_hash=receipt.tx_hash)

        block_number = mined["blockNumber"]
        depth = 0
        while True:
            try:
                current = await self.web3.eth.block_number
            except Exception as exc:
                raise classify_chain_error(exc, "Transaction confirmation failed") from exc
            depth = current - block_number + 1
            if depth >= confirmations:
                break
            if time.monotonic() >= deadline:
                raise TransactionFailed(
                    "Transaction timed out, please try again later",
                    detail=f"{depth}/{confirmations} confirmations",
                    tx_hash=receipt.tx_hash,
                )
            await asyncio.sleep(self._poll_interval)

        logger.info("Transaction %s confirmed (%d blocks)", receipt.tx_hash, depth)
        return TxReceipt(
            tx_hash=receipt.tx_hash,
            block_number=block_number,
            status=mined.get("status"),
            gas_used=mined.get("gasUsed"),
            confirmations=depth,
        )
