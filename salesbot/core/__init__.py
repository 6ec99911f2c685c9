"""
Core helpers package: settings, dependency providers and the in-memory
schedule store.
"""

__all__ = []
