"""QuoteDesk — quoting and pricing engine for backup/DR product bundles."""

__version__ = "1.0.0"
