"""Currency-rate lookups used for display-only price conversion."""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

import httpx

from ..core.config import settings
from ..core.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def convert_price(amount: Decimal, rate: Decimal) -> Decimal:
    """Convert a price with the given rate, rounded to two places."""
    return (Decimal(amount) * rate).quantize(CENTS, rounding=ROUND_HALF_UP)


class CurrencyRateService:
    """Read-only client for a USD-based exchange-rate API."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Args:
            client: Shared HTTP client; a short-lived one is opened per lookup when omitted
            base_url: Endpoint returning a ``conversion_rates`` or ``rates`` map
            timeout_seconds: Request timeout in seconds
        """
        self._client = client
        self._url = base_url or settings.currency_api_url
        self._timeout = timeout_seconds or settings.currency_api_timeout_seconds

    async def _fetch_rates(self) -> dict:
        if self._client is not None:
            response = await self._client.get(self._url, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._url)
        response.raise_for_status()
        return response.json()

    async def get_rate(self, currency: str) -> Decimal:
        """
        Look up the conversion rate from the base currency to ``currency``.

        Raises:
            ValidationError: If the currency code is unknown
            UpstreamError: If the rate API cannot be reached or answers badly
        """
        code = currency.strip().upper()

        try:
            body = await self._fetch_rates()
        except httpx.TimeoutException as e:
            logger.warning(
                "Currency rate request timed out",
                extra={"currency": code, "timeout": self._timeout}
            )
            raise UpstreamError(collaborator="currency-rates", detail="Currency rate lookup timed out") from e
        except httpx.HTTPError as e:
            logger.error(
                "Currency rate request failed",
                extra={"currency": code, "error": str(e)}
            )
            raise UpstreamError(collaborator="currency-rates", detail="Failed to fetch currency rates") from e
        except ValueError as e:
            raise UpstreamError(collaborator="currency-rates", detail="Currency rate response is not JSON") from e

        rates = None
        if isinstance(body, dict):
            rates = body.get("conversion_rates") or body.get("rates")
        if not isinstance(rates, dict):
            logger.error("Currency rate response has no rate table", extra={"currency": code})
            raise UpstreamError(collaborator="currency-rates", detail="Invalid currency rate response structure")

        raw_rate = rates.get(code)
        if raw_rate is None:
            raise ValidationError(
                detail=f"Invalid currency code '{currency}'",
                errors={"currency": "Unknown currency code"}
            )

        try:
            return Decimal(str(raw_rate))
        except InvalidOperation as e:
            raise UpstreamError(collaborator="currency-rates", detail=f"Malformed rate for {code}") from e
