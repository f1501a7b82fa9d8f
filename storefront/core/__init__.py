"""
Core module for the ZK REZK storefront.

Exports the main configuration object.
"""

from storefront.core.config import settings

__all__ = [
    # Config
    "settings",
]
