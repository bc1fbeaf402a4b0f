"""
Utility modules for the gigboard backend.

This package contains shared utilities used across the application:
- logging_config: Named structured loggers
- ttl_store: Expiring key/value store (failed-credential tracking)
- client_ip: Client address extraction behind reverse proxies
"""

from backend.src.utils.ttl_store import TTLStore

__all__ = [
    "TTLStore",
]
