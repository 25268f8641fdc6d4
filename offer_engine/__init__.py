"""
Resort pricing-offer recognition engine.

Entry point: ``offer_engine.pipeline.OfferAnalyzer``.
"""

__version__ = "0.1.0"
