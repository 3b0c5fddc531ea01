"""
Injective Exchange Connector

REST connector for the Injective exchange API.

API Documentation:
    https://api.injective.exchange/

Endpoints Used (each tried across several path variants):
    - GET {variant}                    - Market listing
    - GET {variant}/{marketId}         - Order book snapshot
    - GET {variant}/{marketId}?limit=N - Recent trades
"""

from exchanges.injective.api_client import InjectiveAPIClient

__all__ = ["InjectiveAPIClient"]
