"""ZK REZK storefront: authentication and account-security service."""

__version__ = "0.1.0"
