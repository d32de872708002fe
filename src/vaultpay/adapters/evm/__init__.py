from .chain import Web3ChainClient, classify_chain_error
from .constants import (
    EvmChainConfig,
    ProtocolSettings,
    VaultContracts,
    get_chain_config,
)
from .schemas import AuthorizationSignature, TransferAuthorization
from .signers import (
    LocalAccountSigner,
    build_transfer_typed_data,
    classify_signer_error,
    split_signature,
)
from .standards import (
    TRANSFER_WITH_AUTHORIZATION_TYPES,
    EIP712Domain,
    ERC3009TypedData,
    TransferWithAuthorizationMessage,
)

__all__ = [
    "Web3ChainClient",
    "classify_chain_error",
    "EvmChainConfig",
    "ProtocolSettings",
    "VaultContracts",
    "get_chain_config",
    "AuthorizationSignature",
    "TransferAuthorization",
    "LocalAccountSigner",
    "build_transfer_typed_data",
    "classify_signer_error",
    "split_signature",
    "TRANSFER_WITH_AUTHORIZATION_TYPES",
    "EIP712Domain",
    "ERC3009TypedData",
    "TransferWithAuthorizationMessage",
]
