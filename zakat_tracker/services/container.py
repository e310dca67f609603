"""Wiring of the Zakat services for an application instance."""
import logging
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from zakat_tracker.db import get_db_path
from .cache import FilePriceCache, PriceCache
from .ledger_store import LedgerStore, SQLiteLedgerStore
from .nisab import NisabResolver
from .payments import PaymentLedger
from .prices import PriceQuoteProvider
from .profiles import ProfileStore
from .providers import MetalProvider
from .snapshot_repository import NisabSnapshotStore
from .time_provider import TimeProvider
from .wealth import WealthAggregator
from .zakat_engine import ZakatEngine

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'zakat_services'


@dataclass
class Services:
    prices: PriceQuoteProvider
    nisab: NisabResolver
    ledger: LedgerStore
    wealth: WealthAggregator
    profiles: ProfileStore
    engine: ZakatEngine
    payments: PaymentLedger


def build_services(
    db_path: str,
    data_dir: Optional[str] = None,
    cache_backend: str = 'memory',
    default_currency: str = 'USD',
    metal_provider: Optional[MetalProvider] = None,
    ledger: Optional[LedgerStore] = None,
    time_provider: Optional[TimeProvider] = None,
) -> Services:
    """Assemble the service graph over one SQLite database."""
    if cache_backend == 'file' and data_dir:
        cache = FilePriceCache(data_dir, time_provider=time_provider)
    else:
        cache = PriceCache(time_provider=time_provider)

    prices = PriceQuoteProvider(metal_provider, cache, time_provider)
    nisab = NisabResolver(prices, NisabSnapshotStore(db_path), time_provider)
    ledger = ledger if ledger is not None else SQLiteLedgerStore(db_path)
    wealth = WealthAggregator(ledger)
    profiles = ProfileStore(db_path, default_currency)
    engine = ZakatEngine(nisab, wealth, profiles, time_provider, default_currency)
    payments = PaymentLedger(ledger, wealth, nisab, time_provider)
    logger.debug(f"Services built for {db_path} (cache={cache_backend}, provider={prices.provider_name})")
    return Services(prices, nisab, ledger, wealth, profiles, engine, payments)


def get_services() -> Services:
    """Services for the current app, built on first use.

    METAL_PROVIDER and TIME_PROVIDER in app.config override the configured
    provider and the process clock.
    """
    services = current_app.extensions.get(EXTENSION_KEY)
    if services is None:
        config = current_app.config
        services = build_services(
            db_path=get_db_path(),
            data_dir=config.get('DATA_DIR'),
            cache_backend=config.get('PRICE_CACHE_BACKEND', 'memory'),
            default_currency=config.get('DEFAULT_CURRENCY', 'USD'),
            metal_provider=config.get('METAL_PROVIDER'),
            time_provider=config.get('TIME_PROVIDER'),
        )
        current_app.extensions[EXTENSION_KEY] = services
    return services
