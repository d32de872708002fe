from dataclasses import dataclass, field
from typing import Any, Dict, List


#: EIP-712 type definitions for the domain separator fields the token exposes.
EIP712_DOMAIN_TYPE: List[Dict[str, str]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

#: EIP-3009 primary type, without the domain entry (the shape external
#: ``signTypedData(domain, types, message)`` signers expect).
TRANSFER_WITH_AUTHORIZATION_TYPES: Dict[str, List[Dict[str, str]]] = {
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


# -----------------------------
# EIP-712 Domain
# -----------------------------

@dataclass
class EIP712Domain:
    """
    EIP-712 domain separator.
    Binds a signature to one token contract on one chain and version.
    """
    name: str
    version: str
    chainId: int
    verifyingContract: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chainId,
            "verifyingContract": self.verifyingContract,
        }


# -----------------------------
# EIP-3009: Transfer With Authorization
# -----------------------------


@dataclass
class TransferWithAuthorizationMessage:
    """
    Message payload for EIP-3009 ``TransferWithAuthorization``.

    The EIP names the first two fields ``from`` and ``to``; ``from`` is a
    Python keyword, so the attributes are ``sender`` and ``recipient`` and
    ``to_dict()`` maps them back.

    Attributes:
        sender: Account authorizing the transfer (maps to ``from``).
        recipient: Account receiving the tokens (maps to ``to``).
        value: Amount in smallest units (uint256).
        validAfter: Unix timestamp from which the authorization is valid.
        validBefore: Unix timestamp at which the authorization expires.
        nonce: bytes32 hex string, unique per authorization.
    """
    sender: str
    recipient: str
    value: int
    validAfter: int
    validBefore: int
    nonce: str

    def to_dict(self) -> Dict[str, Any]:
        """Return the message keyed by the EIP-3009 field names."""
        return {
            "from": self.sender,
            "to": self.recipient,
            "value": self.value,
            "validAfter": self.validAfter,
            "validBefore": self.validBefore,
            "nonce": self.nonce,
        }


@dataclass
class ERC3009TypedData:
    """
    Full EIP-712 envelope for a ``TransferWithAuthorization`` message.

    ``to_dict()`` yields ``{types, primaryType, domain, message}``, the layout
    consumed by ``eth_account`` (``full_message=``) and
    ``eth_signTypedData_v4``.
    """
    domain: EIP712Domain
    message: TransferWithAuthorizationMessage

    primary_type: str = "TransferWithAuthorization"

    types: Dict[str, List[Dict[str, str]]] = field(
        default_factory=lambda: {
            "EIP712Domain": list(EIP712_DOMAIN_TYPE),
            **TRANSFER_WITH_AUTHORIZATION_TYPES,
        }
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }


def build_full_typed_data(
    domain: Dict[str, Any],
    types: Dict[str, List[Dict[str, str]]],
    message: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Assemble a full EIP-712 envelope from the three-part signer call shape.

    The ``EIP712Domain`` entry is derived from the keys present in ``domain``
    and ``primaryType`` is the single type in ``types`` that no other type
    references.

    Raises:
        ValueError: If the primary type cannot be determined.
    """
    domain_type = [entry for entry in EIP712_DOMAIN_TYPE if entry["name"] in domain]

    referenced = {
        entry["type"]
        for fields in types.values()
        for entry in fields
    }
    primary = [name for name in types if name != "EIP712Domain" and name not in referenced]
    if len(primary) != 1:
        raise ValueError(f"Cannot determine primary type from {list(types)}")

    return {
        "types": {"EIP712Domain": domain_type, **{k: v for k, v in types.items() if k != "EIP712Domain"}},
        "primaryType": primary[0],
        "domain": domain,
        "message": message,
    }
