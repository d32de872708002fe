"""
Chain Transaction Schemas

Chain-agnostic models passed between the engines and a ``ChainClient``.

Core Classes:
    - ContractCall: A state-changing contract call to be signed and broadcast
    - TxReceipt: Handle returned by ``submit_transaction`` and consumed by
      ``await_confirmations``
"""

from typing import Any, List, Optional

from pydantic import Field

from .bases import CanonicalModel


class ContractCall(CanonicalModel):
    """
    State-changing contract call.

    Attributes:
        contract: Target contract address.
        function: ABI function name (e.g. ``"approve"``, ``"mint"``).
        args: Positional call arguments, already in ABI types.
        description: Short label used in logs and error messages.
    """

    contract: str = Field(..., description="Target contract address")
    function: str = Field(..., description="ABI function name")
    args: List[Any] = Field(default_factory=list, description="Positional call arguments")
    description: Optional[str] = Field(None, description="Human-readable label for logs")

    def label(self) -> str:
        return self.description or f"{self.function}({', '.join(str(a) for a in self.args)})"


class TxReceipt(CanonicalModel):
    """
    Broadcast transaction handle.

    ``block_number`` and ``status`` are filled once the transaction is mined;
    a freshly broadcast transaction carries only its hash.
    """

    tx_hash: str = Field(..., description="Transaction hash (0x-prefixed hex)")
    block_number: Optional[int] = Field(None, ge=0)
    status: Optional[int] = Field(None, description="1 success, 0 reverted")
    gas_used: Optional[int] = Field(None, ge=0)
    confirmations: Optional[int] = Field(None, ge=0)
