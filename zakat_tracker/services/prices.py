"""Metal price quotes with a 24-hour cache and static fallback prices."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

from zakat_tracker.constants import SOURCE_API, SOURCE_FALLBACK, TROY_OZ_TO_GRAMS
from zakat_tracker.data.metals import get_fallback_price
from .cache import PriceCache
from .providers import MetalProvider, ProviderError
from .providers.registry import get_metal_provider
from .time_provider import TimeProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetalPriceQuote:
    """Gold and silver price per gram in one currency on one day."""
    gold_per_gram: float
    silver_per_gram: float
    currency: str
    date: date
    source: str  # 'api' or 'fallback'

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK

    def to_dict(self) -> dict:
        data = asdict(self)
        data['date'] = self.date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'MetalPriceQuote':
        return cls(
            gold_per_gram=float(data['gold_per_gram']),
            silver_per_gram=float(data['silver_per_gram']),
            currency=data['currency'],
            date=date.fromisoformat(data['date']),
            source=data.get('source', SOURCE_FALLBACK),
        )


class PriceQuoteProvider:
    """Resolves today's per-gram gold and silver prices for a currency.

    Lookup order:
    1. Cache (keyed by currency, 24h TTL)
    2. Metal provider spot price per troy ounce, converted to per gram
    3. Static fallback table, per metal

    The resolved quote is always cached, including fallback quotes, so a
    failing provider is not hit again until the TTL expires.
    """

    def __init__(
        self,
        metal_provider: Optional[MetalProvider] = None,
        cache: Optional[PriceCache] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        self._provider = metal_provider if metal_provider is not None else get_metal_provider()
        self._time_provider = time_provider
        self._cache = cache if cache is not None else PriceCache(time_provider=time_provider)

    @property
    def provider_name(self) -> str:
        return self._provider.name

    def _today(self) -> date:
        return (self._time_provider or TimeProvider.get_default()).today()

    def get_prices(self, currency: str) -> MetalPriceQuote:
        """Return the price quote for a currency. Never raises."""
        currency = currency.upper()

        cached = self._read_cache(currency)
        if cached is not None:
            return cached

        with ThreadPoolExecutor(max_workers=2) as executor:
            gold_future = executor.submit(self._fetch_per_gram, 'gold', currency)
            silver_future = executor.submit(self._fetch_per_gram, 'silver', currency)
            gold = gold_future.result()
            silver = silver_future.result()

        quote = MetalPriceQuote(
            gold_per_gram=gold if gold is not None else get_fallback_price('gold', currency),
            silver_per_gram=silver if silver is not None else get_fallback_price('silver', currency),
            currency=currency,
            date=self._today(),
            source=SOURCE_API if gold is not None else SOURCE_FALLBACK,
        )
        if quote.is_fallback:
            logger.warning(f"Using fallback metal prices for {currency}")

        self._write_cache(currency, quote)
        return quote

    def _fetch_per_gram(self, metal: str, currency: str) -> Optional[float]:
        """Spot price per gram from the provider, or None on any failure."""
        try:
            per_ounce = self._provider.fetch_spot(metal, currency)
        except ProviderError as e:
            logger.warning(f"{self._provider.name} failed for {metal}/{currency}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Unexpected error from {self._provider.name} for {metal}/{currency}: {e}")
            return None

        if per_ounce is None:
            logger.info(f"No {metal} price from {self._provider.name} for {currency}")
            return None
        return per_ounce / TROY_OZ_TO_GRAMS

    def _read_cache(self, currency: str) -> Optional[MetalPriceQuote]:
        try:
            data = self._cache.get(currency)
            if data is None:
                return None
            logger.debug(f"Price cache hit for {currency}")
            return MetalPriceQuote.from_dict(data)
        except (KeyError, TypeError, ValueError, OSError) as e:
            logger.warning(f"Discarding unusable cached quote for {currency}: {e}")
            return None

    def _write_cache(self, currency: str, quote: MetalPriceQuote) -> None:
        try:
            self._cache.set(currency, quote.to_dict())
        except OSError as e:
            logger.warning(f"Failed to cache price quote for {currency}: {e}")
