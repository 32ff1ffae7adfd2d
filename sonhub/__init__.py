"""
Sonhub

Offline-first content layer for a community Bible app: a persistent TTL cache,
a read-through Bible chapter cache, a bounded media cache and a ranked,
paginated community feed.
"""

__version__ = "0.1.0"
