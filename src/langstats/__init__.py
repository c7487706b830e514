"""GitHub language usage statistics with two-tier caching and SVG charts."""

__version__ = "0.1.0"
