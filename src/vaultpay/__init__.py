"""
vaultpay: client for a vault-backed token with gasless transfers.

Mint the wrapped token against a reserve asset (approve, then mint), redeem
it, or transfer it through a relayer with a signed EIP-3009 authorization.
"""

from .adapters import ChainClient, LocalAccountSigner, TypedDataSigner, Web3ChainClient
from .adapters.evm.constants import ProtocolSettings, VaultContracts, get_chain_config
from .adapters.evm.schemas import TransferAuthorization
from .clients import RelayerClient
from .engine.states import ProtocolState, TransferSnapshot
from .flows import (
    AllowanceMintEngine,
    AuthorizationSigner,
    SettlementCoordinator,
    TokenBalance,
    WithdrawEngine,
    settle_payment,
    verify_payment,
)

__version__ = "0.1.0"

__all__ = [
    "ChainClient",
    "LocalAccountSigner",
    "TypedDataSigner",
    "Web3ChainClient",
    "ProtocolSettings",
    "VaultContracts",
    "get_chain_config",
    "TransferAuthorization",
    "RelayerClient",
    "ProtocolState",
    "TransferSnapshot",
    "AllowanceMintEngine",
    "AuthorizationSigner",
    "SettlementCoordinator",
    "TokenBalance",
    "WithdrawEngine",
    "settle_payment",
    "verify_payment",
]
