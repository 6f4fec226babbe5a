"""
Real estate listing backend.
Property cache, favorites overlay and geolocation enrichment over a remote document store.
"""

__version__ = "1.0.0"
