"""Tax calculation service clients.

Both clients implement the collaborator contract used by the estimate
preview: ``await client.calculate(VitaTaxInput) -> EstimateResult``, with
every failure raised as a TransientComputeFailure subclass.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from config.settings import CalculationServiceSettings
from preview.exceptions import (
    CalculationServiceError,
    CalculationServiceUnavailable,
    MalformedEstimateError,
)
from preview.models import EstimateResult, VitaTaxInput

logger = logging.getLogger(__name__)


class TaxCalculationClient:
    """HTTP client for the tax calculation endpoint.

    Usage:
        async with TaxCalculationClient.from_settings() as client:
            estimate = await client.calculate(tax_input)

    Timeouts are enforced by the transport; a timeout is reported like
    any other failure.
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str = "/api/vita-intake/calculate-tax",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize client.

        Args:
            base_url: Calculation service base URL.
            endpoint: Path of the tax calculation endpoint.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (e.g. MockTransport in tests).
            client: Optional pre-built AsyncClient; not closed by aclose().
        """
        self._endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[CalculationServiceSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "TaxCalculationClient":
        settings = settings or CalculationServiceSettings()
        return cls(
            base_url=settings.base_url,
            endpoint=settings.endpoint,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    async def calculate(self, tax_input: VitaTaxInput) -> EstimateResult:
        """POST the normalized input and validate the estimate returned.

        Raises:
            CalculationServiceUnavailable: Network error or timeout.
            CalculationServiceError: Non-2xx response.
            MalformedEstimateError: Body is not JSON or not an estimate.
        """
        payload = tax_input.model_dump(mode="json", by_alias=True)

        try:
            response = await self._client.post(self._endpoint, json=payload)
        except httpx.TimeoutException as e:
            logger.warning(f"Tax calculation timed out: {e}")
            raise CalculationServiceUnavailable("Tax calculation timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"Tax calculation request failed: {e}")
            raise CalculationServiceUnavailable(f"Tax calculation request failed: {e}") from e

        if not response.is_success:
            logger.warning(f"Tax calculation returned HTTP {response.status_code}")
            raise CalculationServiceError(
                f"Failed to calculate tax (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            body: Any = response.json()
        except ValueError as e:
            raise MalformedEstimateError(
                "Tax calculation returned a non-JSON body",
                status_code=response.status_code,
            ) from e

        try:
            return EstimateResult.model_validate(body)
        except ValidationError as e:
            raise MalformedEstimateError(
                f"Tax calculation returned an invalid estimate ({e.error_count()} errors)",
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "TaxCalculationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class LocalCalculationClient:
    """Runs an EstimateService in-process behind the same contract.

    Used when the preview and the calculation service live in the same
    process, and in tests.
    """

    def __init__(self, estimate_service: Any):
        self._service = estimate_service

    async def calculate(self, tax_input: VitaTaxInput) -> EstimateResult:
        try:
            return await asyncio.to_thread(self._service.estimate, tax_input)
        except ValueError as e:
            raise CalculationServiceError(str(e), status_code=400) from e
