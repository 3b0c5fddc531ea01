"""
Application Context

Holds every long-lived runtime object (upstream client, caches, services)
in one explicit object built once at process start and passed to whatever
needs it. Nothing in the core keeps hidden module-level client or cache state.

Example:
    async with MarketIntelContext(settings) as ctx:
        markets = await ctx.client.list_markets()
        summary = await ctx.markets.build_summary(markets[0].id)
"""

from typing import Optional

from core.cache import ResponseCache
from core.config import Settings
from core.logging import get_logger
from exchanges.injective.api_client import InjectiveAPIClient
from services.market_service import MarketService


class MarketIntelContext:
    """
    Runtime wiring for the market intelligence backend.

    Attributes:
        settings: Configuration the context was built from
        client: Injective acquisition client (owns its cache, limiter and recorder)
        summary_cache: Cache of computed market summaries
        markets: MarketService over client and summary_cache
    """

    def __init__(
        self,
        config: Settings,
        client: Optional[InjectiveAPIClient] = None,
        summary_cache: Optional[ResponseCache] = None,
    ):
        self.settings = config
        self.client = client or InjectiveAPIClient.from_settings(config)
        self.summary_cache = summary_cache or ResponseCache(
            default_ttl=config.cache_ttl,
            max_entries=config.cache_bound,
        )
        self.markets = MarketService(self.client, self.summary_cache)
        self.logger = get_logger(__name__)

    async def start(self) -> None:
        await self.client.initialize()
        self.logger.info(f"Market intelligence context started ({self.client.base_url})")

    async def stop(self) -> None:
        await self.client.shutdown()
        self.logger.info("Market intelligence context stopped")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
