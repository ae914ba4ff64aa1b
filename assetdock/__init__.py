"""assetdock - asset collection governance, variants and pending uploads."""

__version__ = "0.1.0"
