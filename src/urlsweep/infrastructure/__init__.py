"""
Infrastructure Package.

Provides egress proxy rotation shared by every fetch backend.
"""

from .proxy_rotation import (
    ProxyPool,
    ProxyConfig,
    ProxyType,
    create_proxy_pool,
    load_proxies_from_file,
    parse_proxy_auth,
    parse_proxy_uri,
    pick_proxy,
)

__all__ = [
    # Proxy Rotation
    "ProxyPool",
    "ProxyConfig",
    "ProxyType",
    "create_proxy_pool",
    "load_proxies_from_file",
    "parse_proxy_auth",
    "parse_proxy_uri",
    "pick_proxy",
]
