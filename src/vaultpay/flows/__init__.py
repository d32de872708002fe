from .allowance import AllowanceMintEngine, ApprovalState, ApprovedFor, Unapproved
from .authorization import AuthorizationSigner, generate_nonce
from .balances import TokenBalance
from .settlement import SettlementCoordinator, settle_payment, verify_payment
from .withdraw import WithdrawEngine

__all__ = [
    "AllowanceMintEngine",
    "ApprovalState",
    "ApprovedFor",
    "Unapproved",
    "AuthorizationSigner",
    "generate_nonce",
    "TokenBalance",
    "SettlementCoordinator",
    "settle_payment",
    "verify_payment",
    "WithdrawEngine",
]
