"""
Relayer HTTP Client

``httpx.AsyncClient`` subclass for the relayer's payment endpoints:

    POST /payment/verify   check a signed authorization without settling it
    POST /payment/settle   submit the authorization on-chain

Transport problems never escape as raw httpx errors: connection failures,
non-2xx statuses (status and body folded into the message) and unparsable
bodies all raise ``TransientNetwork``. A parsed body is returned as-is, so an
explicit ``success: false`` reaches the caller as a business outcome.
"""

import logging
from typing import Optional, Type, TypeVar

import httpx
from pydantic import ValidationError

from ..adapters.evm.constants import get_relayer_url_from_env
from ..engine.exceptions import TransientNetwork
from ..schemas.relayer import PaymentRequest, RelayerResponse, SettleResponse, VerifyResponse

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=RelayerResponse)

VERIFY_PATH = "/payment/verify"
SETTLE_PATH = "/payment/settle"


class RelayerClient(httpx.AsyncClient):
    """
    Extended httpx.AsyncClient speaking the relayer protocol.

    Fully compatible with httpx.AsyncClient - supports all methods, properties,
    and can be used as an async context manager.

    Usage:
        ```python
        async with RelayerClient("https://relayer.example.com") as relayer:
            verify = await relayer.verify(authorization.to_payment_request())
        ```
    """

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        """
        Initialize the client.

        Args:
            base_url: Relayer base URL. Falls back to ``RELAYER_API_URL`` and
                then ``http://localhost:3000``.
            **kwargs: All standard httpx.AsyncClient arguments (timeout, transport, etc.)
        """
        kwargs.setdefault("timeout", 30.0)
        headers = {"Accept": "*/*", "Content-Type": "application/json"}
        headers.update(kwargs.pop("headers", None) or {})
        super().__init__(base_url=base_url or get_relayer_url_from_env(), headers=headers, **kwargs)

    async def verify(self, request: PaymentRequest) -> VerifyResponse:
        """
        Ask the relayer to validate an authorization.

        Raises:
            TransientNetwork: On transport failure, non-2xx status or bad body.
        """
        return await self._post_payment(VERIFY_PATH, request, VerifyResponse, "Verify")

    async def settle(self, request: PaymentRequest) -> SettleResponse:
        """
        Ask the relayer to settle an authorization on-chain (single attempt).

        Raises:
            TransientNetwork: On transport failure, non-2xx status or bad body.
        """
        return await self._post_payment(SETTLE_PATH, request, SettleResponse, "Settle")

    async def _post_payment(
        self,
        path: str,
        request: PaymentRequest,
        response_model: Type[ResponseT],
        label: str,
    ) -> ResponseT:
        body = request.to_canonical_json()
        logger.debug("POST %s %s", path, body)

        try:
            response = await self.post(path, content=body)
        except httpx.HTTPError as exc:
            raise TransientNetwork(
                f"{label} request failed: {exc}",
                detail=repr(exc),
            ) from exc

        if not response.is_success:
            raise TransientNetwork(
                f"{label} request failed: {response.status_code} - {response.text}",
                detail=response.text,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransientNetwork(
                f"{label} request failed: response is not valid JSON",
                detail=response.text,
                status_code=response.status_code,
            ) from exc

        if not isinstance(payload, dict):
            raise TransientNetwork(
                f"{label} request failed: unexpected response body",
                detail=response.text,
                status_code=response.status_code,
            )

        try:
            parsed = response_model.model_validate(payload)
        except ValidationError as exc:
            raise TransientNetwork(
                f"{label} request failed: malformed response",
                detail=str(exc),
                status_code=response.status_code,
            ) from exc

        logger.debug("%s response: success=%s message=%s", label, parsed.success, parsed.message)
        return parsed
