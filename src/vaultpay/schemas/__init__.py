from .bases import AttemptOutcome, CanonicalModel
from .relayer import (
    DomainParams,
    PaymentMessage,
    PaymentRequest,
    RelayerResponse,
    SettleResponse,
    SettlementAttempt,
    SettlementResult,
    VerifyResponse,
)
from .transactions import ContractCall, TxReceipt

__all__ = [
    "AttemptOutcome",
    "CanonicalModel",
    "ContractCall",
    "DomainParams",
    "PaymentMessage",
    "PaymentRequest",
    "RelayerResponse",
    "SettleResponse",
    "SettlementAttempt",
    "SettlementResult",
    "TxReceipt",
    "VerifyResponse",
]
