"""
API routes for the ZK REZK storefront.

This package contains all API endpoint definitions organized by feature.
"""

from storefront.api.routes import account, admin, auth, health

__all__ = ["account", "admin", "auth", "health"]
