"""Upstream banking sources."""

from bank_sync.upstream.base import BaseUpstream, LoginFailedError, UpstreamError, VendorDownError
from bank_sync.upstream.weboob import WeboobClient

__all__ = [
    "BaseUpstream",
    "LoginFailedError",
    "UpstreamError",
    "VendorDownError",
    "WeboobClient",
]
