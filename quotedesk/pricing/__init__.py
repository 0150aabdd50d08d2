"""
Pricing engine: tier resolution, discounts, fees, loyalty and the quote
aggregator. Everything here is pure; callers pass a config dict or get
the cached one from quotedesk.core.config.
"""
