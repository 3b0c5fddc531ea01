"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (cache, limiter, parsers, client, metrics, API)

Upstream HTTP is never contacted: client tests replace InjectiveAPIClient._send.
Uses pytest with pytest-asyncio for testing async functionality.
"""
