"""
Exchange Connectors Package

This package contains the upstream exchange connector modules.
Each exchange has its own subfolder with:
- api_client.py: REST API logic (fallback, rate limiting, caching, telemetry)
- parsers.py: Payload validation and normalization to our schemas
"""
