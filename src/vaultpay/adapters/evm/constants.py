"""
EVM Chain and Protocol Configuration

Provides unified access to the per-chain contract registry (wrapped token,
reserve asset, vault), protocol settings (relayer fee, validity window, settle
retry policy, confirmation depths) and the Decimal-based amount helpers shared
by every engine.

Environment variables (a ``.env`` file is loaded at import):
    - EVM_PRIVATE_KEY: Key used by the local signer and chain client
    - EVM_RPC_URL: JSON-RPC endpoint
    - RELAYER_API_URL: Relayer base URL (default ``http://localhost:3000``)
    - VAULTPAY_TRANSFER_FEE: Relayer fee in whole tokens (default ``2``)
    - VAULTPAY_SETTLE_MAX_ATTEMPTS: Settle attempts (default ``3``)
    - VAULTPAY_SETTLE_RETRY_DELAY: Seconds between settle attempts (default ``1.0``)
"""

import os
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Optional

import dotenv
from pydantic import BaseModel, Field

dotenv.load_dotenv()


DEFAULT_RELAYER_URL = "http://localhost:3000"

#: Precision assumed when ``decimals()`` cannot be read (USDT-style tokens).
FALLBACK_PRECISION = 6

#: Fixed length of an authorization's validity window, in seconds.
VALIDITY_WINDOW_SECONDS = 900

_AMOUNT_PATTERN = re.compile(r"\d*\.?\d*")
_ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")


class VaultContracts(BaseModel):
    """Contract addresses the protocol talks to on one chain."""
    token: str = Field(..., description="Wrapped token (ERC-20 + ERC-3009)")
    reserve: str = Field(..., description="Reserve asset deposited into the vault (USDT)")
    vault: str = Field(..., description="Vault minting / redeeming the wrapped token")


class EvmChainConfig(BaseModel):
    """EVM network entry of the contract registry."""
    chain_id: int
    name: str
    contracts: VaultContracts


class ProtocolSettings(BaseModel):
    """
    Protocol constants fixed at construction time.

    Attributes:
        transfer_fee: Relayer fee in whole tokens, folded into the signed value.
        validity_window: ``validBefore - validAfter`` in seconds.
        settle_max_attempts: Upper bound on settle attempts.
        settle_retry_delay: Fixed delay between settle attempts, in seconds.
        reset_confirmations: Confirmations awaited for the reset-to-zero approval.
        write_confirmations: Confirmations awaited for approve, mint and withdraw.
        fallback_precision: Decimals used when the token query fails.
    """
    transfer_fee: Decimal = Field(default=Decimal("2"), ge=0)
    validity_window: int = Field(default=VALIDITY_WINDOW_SECONDS, gt=0)
    settle_max_attempts: int = Field(default=3, ge=1)
    settle_retry_delay: float = Field(default=1.0, ge=0)
    reset_confirmations: int = Field(default=1, ge=1)
    write_confirmations: int = Field(default=2, ge=1)
    fallback_precision: int = Field(default=FALLBACK_PRECISION, ge=0)

    @classmethod
    def from_env(cls) -> "ProtocolSettings":
        """Build settings, overriding defaults from ``VAULTPAY_*`` variables."""
        overrides = {}
        fee = os.getenv("VAULTPAY_TRANSFER_FEE")
        if fee:
            overrides["transfer_fee"] = fee
        attempts = os.getenv("VAULTPAY_SETTLE_MAX_ATTEMPTS")
        if attempts:
            overrides["settle_max_attempts"] = attempts
        delay = os.getenv("VAULTPAY_SETTLE_RETRY_DELAY")
        if delay:
            overrides["settle_retry_delay"] = delay
        return cls(**overrides)


# Raw contract registry, keyed by EIP-155 chain id.
_EVM_CHAINS_DATA: Dict[int, Dict] = {
    1: {
        "name": "Ethereum Mainnet",
        "contracts": {
            "token": "0xba08Bbc0ed9D61238353629d06d55F89bA9F0ba3",
            "reserve": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
            "vault": "0x09568402dF3D4b8233eCf00b70FA34823C57C9B5",
        },
    },
    11155111: {
        "name": "Sepolia Testnet",
        "contracts": {
            "token": "0xd6806a129E91077cCdbe055ec48b3FE3cdc9Ab5A",
            "reserve": "0x4920E3E1E7c4D13c01188CfC7723873eef6639Bc",
            "vault": "0x7695b38d2A3308Cf45BFfdD8c297015F82708787",
        },
    },
}


def get_chain_config(chain_id: int) -> EvmChainConfig:
    """
    Look up the contract registry entry for ``chain_id``.

    Raises:
        ValueError: If the protocol is not deployed on the chain.
    """
    data = _EVM_CHAINS_DATA.get(chain_id)
    if data is None:
        raise ValueError(
            f"Contracts are not deployed on chain {chain_id}. "
            f"Supported chains: {sorted(_EVM_CHAINS_DATA)}"
        )
    return EvmChainConfig(chain_id=chain_id, **data)


def get_supported_chain_ids() -> list[int]:
    return sorted(_EVM_CHAINS_DATA)


def get_private_key_from_env() -> Optional[str]:
    """
    Load the EVM private key from the environment.

    Environment Variable:
        - EVM_PRIVATE_KEY: 0x-prefixed hex private key

    Returns:
        str: Private key, or None if not configured
    """
    return os.getenv("EVM_PRIVATE_KEY")


def get_rpc_url_from_env() -> Optional[str]:
    """Load the JSON-RPC endpoint from ``EVM_RPC_URL``."""
    return os.getenv("EVM_RPC_URL")


def get_relayer_url_from_env() -> str:
    """Load the relayer base URL from ``RELAYER_API_URL``."""
    return os.getenv("RELAYER_API_URL") or DEFAULT_RELAYER_URL


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def is_valid_address(address: object) -> bool:
    """True for a 0x-prefixed, 40-hex-digit account address."""
    return isinstance(address, str) and bool(_ADDRESS_PATTERN.fullmatch(address))


def is_valid_amount(amount: object) -> bool:
    """
    True for a non-empty decimal string (digits, at most one point) that is
    strictly greater than zero.
    """
    if not isinstance(amount, str) or not amount.strip():
        return False
    if not _AMOUNT_PATTERN.fullmatch(amount):
        return False
    # "." alone matches the pattern but is not a number
    try:
        parsed = Decimal(amount)
    except InvalidOperation:
        return False
    return parsed.is_finite() and parsed > 0


def parse_amount(amount: str) -> Decimal:
    """
    Parse a validated amount string.

    Raises:
        ValueError: If ``amount`` does not satisfy ``is_valid_amount``.
    """
    if not is_valid_amount(amount):
        raise ValueError(f"Invalid amount: {amount!r}")
    return Decimal(amount)


# ---------------------------------------------------------------------------
# Unit conversion
# ---------------------------------------------------------------------------

def amount_to_value(*, amount: int | str | Decimal, decimals: int) -> int:
    """Convert a human-readable token `amount` into smallest-unit integer `value`.

    Used for on-chain writes (approve, mint, withdraw), where the amount must
    be exactly representable.

    Args:
        amount: Human-readable amount (e.g. "1.23"). Accepts int/str/Decimal.
        decimals: Token decimals (e.g. 6 for USDT).

    Returns:
        int: Smallest-unit integer value.

    Raises:
        ValueError: If inputs are invalid or the amount cannot be represented in smallest units.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    scaled = dec_amount.scaleb(decimals)

    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount!r} is not representable with decimals={decimals} "
            f"(would create fractional smallest units)"
        )

    return int(scaled)


def round_to_integer(*, amount: Decimal, decimals: int) -> int:
    """
    Scale ``amount`` by ``10**decimals`` and round half-up to an integer.

    Used for the signed transfer value (amount plus fee), where sub-unit
    digits are rounded rather than rejected.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    return int(amount.scaleb(decimals).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def value_to_amount(*, value: int | str | Decimal, decimals: int) -> Decimal:
    """Convert a smallest-unit integer `value` into a human-readable Decimal amount.

    Args:
        value: Smallest-unit integer value (e.g. 1230000 for 1.23 USDT).
        decimals: Token decimals (e.g. 6).

    Returns:
        Decimal: Exact human-readable amount.

    Raises:
        ValueError: If inputs are invalid.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid value: {value!r}") from e

    if dec_value < 0:
        raise ValueError("value must be non-negative")

    if dec_value != dec_value.to_integral_value():
        raise ValueError("value must be an integer in smallest units")

    return dec_value.scaleb(-decimals)


def format_amount(amount: Decimal) -> str:
    """Render an amount without exponent or trailing zeros (``"12.5"``, ``"0"``)."""
    if amount == 0:
        return "0"
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
