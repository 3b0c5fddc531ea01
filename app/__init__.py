"""
FastAPI Application Package

Thin HTTP boundary over MarketIntelContext. Maps query parameters onto the
market service and MarketDataError subclasses onto HTTP status codes.
"""
