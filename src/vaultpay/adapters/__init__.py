from .bases import ChainClient, TypedDataSigner
from .evm import LocalAccountSigner, Web3ChainClient

__all__ = [
    "ChainClient",
    "TypedDataSigner",
    "LocalAccountSigner",
    "Web3ChainClient",
]
