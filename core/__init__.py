"""
Core Package

Contains the exchange-agnostic building blocks of the market intelligence backend:
- Config / Logging: Settings from .env and the shared "marketintel" logger
- Exceptions: MarketDataError taxonomy surfaced by every acquisition path
- Schemas: Pydantic models for market data, metric bundles and telemetry
- Cache / RateLimiter / CallMetricsRecorder: thread-safe runtime primitives
- MarketIntelContext: explicit wiring of the long-lived runtime objects
"""
