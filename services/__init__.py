"""
Services Package

- metrics_engine: pure scoring of order books and trades, plus alert signals
- market_service: summaries, insights and activity rankings over the Injective client
"""
