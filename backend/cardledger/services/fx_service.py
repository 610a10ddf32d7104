"""
Foreign exchange service for converting card spend into the base currency (INR).
"""
import inspect
from decimal import Decimal
from typing import Awaitable, Callable, Union
import httpx
import logging
from cardledger.core.config import settings
from cardledger.core.exceptions import ExchangeRateError

logger = logging.getLogger(__name__)

# rate(from_currency, to_currency) -> Decimal, sync or awaitable
RateLookup = Callable[[str, str], Union[Decimal, Awaitable[Decimal]]]


def get_base_currency() -> str:
    """Base currency all amounts are normalized to (defaults to INR)."""
    base_currency = getattr(settings, 'FX_BASE_CURRENCY', 'INR')
    return base_currency.upper() if base_currency else 'INR'


def get_exchange_rate(currency: str, base_currency: str = None) -> Decimal:
    """
    Fetch the latest rate from ExchangeRate-API v6.
    Returns rate to base currency (1 unit of currency = rate base_currency).

    Endpoint: https://v6.exchangerate-api.com/v6/{API_KEY}/latest/{CURRENCY}
    """
    if base_currency is None:
        base_currency = get_base_currency()

    currency_upper = currency.upper()
    base_currency_upper = base_currency.upper()

    if currency_upper == base_currency_upper:
        return Decimal("1")

    if not settings.FX_API_KEY:
        logger.error("FX_API_KEY is not configured. Please set it in .env file.")
        raise ExchangeRateError("FX_API_KEY is required for ExchangeRate-API")

    api_url = f"https://v6.exchangerate-api.com/v6/{settings.FX_API_KEY}/latest/{currency_upper}"
    logger.info(f"Fetching latest exchange rate from ExchangeRate-API for {currency_upper}")

    try:
        response = httpx.get(api_url, timeout=10.0)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"HTTP error with ExchangeRate-API: {e.response.status_code} - {e.response.text}")
        raise ExchangeRateError(f"ExchangeRate-API HTTP error: {e.response.status_code}") from e
    except httpx.HTTPError as e:
        logger.error(f"HTTP error with ExchangeRate-API: {e}")
        raise ExchangeRateError(f"ExchangeRate-API network error: {str(e)}") from e

    if settings.DEBUG:
        logger.debug(f"ExchangeRate-API response: {data}")

    if data.get("result") != "success":
        error_msg = data.get("error-type", "Unknown error")
        logger.error(f"ExchangeRate-API returned error: {error_msg}")
        raise ExchangeRateError(f"ExchangeRate-API error: {error_msg}")

    # conversion_rates is keyed by target currency with the requested currency as base
    conversion_rates = data.get("conversion_rates", {})
    base_rate = conversion_rates.get(base_currency_upper)
    if base_rate is None:
        logger.error(f"{base_currency_upper} not found in conversion_rates")
        raise ExchangeRateError(f"{base_currency_upper} rate not available in API response")

    rate = Decimal(str(base_rate))
    if rate <= 0:
        logger.error(f"Invalid rate: {rate}")
        raise ExchangeRateError(f"Invalid exchange rate: {rate}")

    logger.info(f"Fetched rate from ExchangeRate-API: {currency_upper} = {rate} {base_currency_upper}")
    return rate


async def resolve_rate(rate_lookup: RateLookup, currency: str, base_currency: str = None) -> Decimal:
    """Call a sync or async rate lookup and normalize the result to Decimal."""
    base_currency = (base_currency or get_base_currency()).upper()
    result = rate_lookup(currency.upper(), base_currency)
    if inspect.isawaitable(result):
        result = await result
    return Decimal(str(result))


def convert_to_base(amount: Decimal, rate: Decimal) -> Decimal:
    """Convert an amount with a rate (1 source currency = rate base currency), rounded to paise."""
    return (Decimal(str(amount)) * Decimal(str(rate))).quantize(Decimal("0.01"))
