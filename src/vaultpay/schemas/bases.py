"""
Base Schema Models for vaultpay

Defines the canonical base model every wire and domain model inherits from.

Core Classes:
    - CanonicalModel: RFC8785-style Pydantic base model with deterministic JSON
    - AttemptOutcome: Outcome of one settle attempt against the relayer

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """
    RFC8785-compliant Pydantic base model with canonical JSON serialization.

    Produces a deterministic JSON representation (sorted keys, no extra
    whitespace) so that payloads logged for diagnostics and payloads sent to
    the relayer compare byte-for-byte.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        MyModel(name="test", value=123).to_canonical_json()
        # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        ``model_dump(mode="json", by_alias=True)`` converts nested models,
        enums and Decimals to plain types using wire field names; sorted keys
        and compact separators make the output stable.

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-compatible dict using wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class AttemptOutcome(str, Enum):
    """
    Outcome of a single settle attempt.

    Attributes:
        SUCCESS: Relayer settled the authorization
        BUSINESS_REJECTED: Relayer returned a definitive failure payload
        TRANSIENT_ERROR: Transport failure or non-definitive response
    """

    SUCCESS = "success"
    BUSINESS_REJECTED = "business_rejected"
    TRANSIENT_ERROR = "transient_error"
