"""HTTP client for the payment API."""

from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .config import get_settings
from .errors import PaymentAPIRejected, PaymentAPIUnreachable
from .logging import get_logger
from .models import PaymentRequest, PaymentResponse, PaymentStatus, ScenarioType

logger = get_logger(__name__)


class PaymentAPIClient:
    """Client for the interaction, direct payment and status endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root including the version prefix. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
            transport: Optional httpx transport (tests, in-process ASGI apps)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a request and return the decoded JSON body."""
        logger.debug(f"Payment API request: {method} {endpoint}", payload=payload)

        try:
            async with self._client() as client:
                resp = await client.request(method, endpoint, json=payload)
        except httpx.RequestError as e:
            logger.warning("Payment API unreachable", endpoint=endpoint, error=str(e))
            raise PaymentAPIUnreachable(f"Payment API unreachable: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            # Gateways and proxies answer with bare strings or arrays
            data = {}

        if resp.status_code >= 400:
            message = str(data.get("message") or f"Payment API error {resp.status_code}")
            logger.warning(
                "Payment API rejected request",
                endpoint=endpoint,
                status_code=resp.status_code,
                message=message,
            )
            raise PaymentAPIRejected(message, status_code=resp.status_code)

        logger.debug("Payment API response", endpoint=endpoint, status_code=resp.status_code)
        return data

    async def _create(self, endpoint: str, request: PaymentRequest) -> PaymentResponse:
        data = await self._request("POST", endpoint, request.to_wire())
        try:
            response = PaymentResponse.model_validate(data)
        except ValidationError as e:
            raise PaymentAPIRejected(f"Malformed payment API response: {e.error_count()} invalid field(s)") from e
        if not response.success:
            raise PaymentAPIRejected(response.message or "Payment request was not accepted")
        return response

    async def create_interaction(self, request: PaymentRequest) -> PaymentResponse:
        """Create a payment interaction (redirect link or widget session)."""
        return await self._create("/payment/interaction", request)

    async def create_direct_payment(self, request: PaymentRequest) -> PaymentResponse:
        """Create a direct payment carrying card data."""
        return await self._create("/payment/direct", request)

    async def get_status(self, order_id: str, scenario_type: ScenarioType) -> PaymentStatus:
        """
        Query the status of an order.

        Redirect and embedded orders are interactions; direct orders are payments.
        """
        if scenario_type == ScenarioType.DIRECT:
            endpoint = f"/payment/{order_id}"
        else:
            endpoint = f"/interaction/{order_id}"

        data = await self._request("GET", endpoint)
        if not isinstance(data.get("data"), dict):
            raise PaymentAPIRejected("Malformed payment status response: missing data")
        try:
            return PaymentStatus.model_validate(data["data"])
        except ValidationError as e:
            raise PaymentAPIRejected(f"Malformed payment status response: {e.error_count()} invalid field(s)") from e
