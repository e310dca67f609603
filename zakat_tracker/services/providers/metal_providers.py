"""Metal spot-price provider implementations."""
import json
import logging
import urllib.request
import urllib.error
from typing import Optional

from zakat_tracker.data.metals import get_symbol, is_valid_metal
from zakat_tracker.services.config import (
    get_goldapi_key,
    get_metals_api_key,
    get_price_api_timeout,
    get_user_agent,
)
from . import MetalProvider, ProviderError, RateLimitError, AuthenticationError, NetworkError

logger = logging.getLogger(__name__)


def parse_price(value) -> Optional[float]:
    """Return a positive float price, or None for missing/unusable values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if price <= 0 or price != price:  # NaN
        return None
    return price


def _get_json(url: str, headers: dict, timeout: float) -> dict:
    """GET a JSON document, translating transport failures into provider errors."""
    req = urllib.request.Request(url, headers={'User-Agent': get_user_agent(), **headers})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return json.loads(response.read().decode('utf-8'))
    except urllib.error.HTTPError as e:
        if e.code == 429:
            raise RateLimitError("Rate limit exceeded")
        if e.code in (401, 403):
            raise AuthenticationError(f"Invalid API key (HTTP {e.code})")
        raise ProviderError(f"HTTP error: {e.code}")
    except urllib.error.URLError as e:
        raise NetworkError(f"Network error: {e.reason}")
    except TimeoutError:
        raise NetworkError(f"Timed out after {timeout}s")
    except json.JSONDecodeError:
        raise ProviderError("Invalid JSON response")


class MetalsLiveProvider(MetalProvider):
    """metals.live spot API - requires API key.

    One request per metal, quoted per troy ounce in the requested currency.
    """

    BASE_URL = "https://api.metals.live/v1/spot"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self._api_key = api_key or get_metals_api_key()
        self._timeout = timeout if timeout is not None else get_price_api_timeout()

    @property
    def name(self) -> str:
        return "metals-live"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def fetch_spot(self, metal: str, currency: str) -> Optional[float]:
        if not self._api_key:
            raise AuthenticationError("metals.live API key not configured")
        if not is_valid_metal(metal):
            raise ProviderError(f"Unsupported metal: {metal}")

        url = f"{self.BASE_URL}/{metal.lower()}?currency={currency.upper()}"
        data = _get_json(url, {'X-API-Key': self._api_key}, self._timeout)
        return parse_price(data.get('price') if isinstance(data, dict) else None)


class GoldAPIProvider(MetalProvider):
    """GoldAPI.io provider - requires API key.

    Free tier: 300 requests/month.
    """

    BASE_URL = "https://www.goldapi.io/api"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self._api_key = api_key or get_goldapi_key()
        self._timeout = timeout if timeout is not None else get_price_api_timeout()

    @property
    def name(self) -> str:
        return "goldapi"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def fetch_spot(self, metal: str, currency: str) -> Optional[float]:
        if not self._api_key:
            raise AuthenticationError("GoldAPI key not configured")
        if not is_valid_metal(metal):
            raise ProviderError(f"Unsupported metal: {metal}")

        url = f"{self.BASE_URL}/{get_symbol(metal)}/{currency.upper()}"
        data = _get_json(url, {'x-access-token': self._api_key}, self._timeout)
        return parse_price(data.get('price') if isinstance(data, dict) else None)


class ChainedMetalProvider(MetalProvider):
    """Try each configured provider in order until one returns a price."""

    def __init__(self, providers: list[MetalProvider]):
        self._providers = [p for p in providers if p.is_configured()]
        self._last_provider: Optional[MetalProvider] = self._providers[0] if self._providers else None

    @property
    def name(self) -> str:
        return self._last_provider.name if self._last_provider else "chained"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._providers)

    def fetch_spot(self, metal: str, currency: str) -> Optional[float]:
        last_error = None
        for provider in self._providers:
            try:
                price = provider.fetch_spot(metal, currency)
            except ProviderError as exc:
                logger.info(f"{provider.name} failed for {metal}/{currency}: {exc}")
                last_error = exc
                continue
            if price is not None:
                self._last_provider = provider
                return price

        if last_error:
            raise ProviderError(f"All providers failed, last error: {last_error}")
        return None


class FallbackMetalProvider(MetalProvider):
    """Provider used when no API key is configured; never has a price."""

    @property
    def name(self) -> str:
        return "fallback"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return False

    def fetch_spot(self, metal: str, currency: str) -> Optional[float]:
        """Return None - signals the static fallback table should be used."""
        return None
