# maskinporten_client/token_cache.py
"""
Token caching.

The service talks to the cache through ``TokenCacheProvider``. The default
``MemoryTokenCacheProvider`` keeps tokens in process memory. An entry is
checked for expiration when it is read, and every write drops the entries
that have already expired, so keys that are never read again do not pile up.
There is no background sweep.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional, Tuple

from .token_types import TokenResponse

logger = logging.getLogger(__name__)


class TokenCacheProvider(ABC):
    """Interface for token caches. Implement this to plug in e.g. Redis."""

    @abstractmethod
    async def try_get_token(self, key: str) -> Tuple[bool, Optional[TokenResponse]]:
        """
        Look up a cached token.

        Args:
            key: Cache key

        Returns:
            (True, token) on a hit, (False, None) on a miss or expired entry
        """

    @abstractmethod
    async def set(self, key: str, value: TokenResponse, ttl: timedelta) -> None:
        """
        Cache a token.

        Args:
            key: Cache key
            value: Token to cache
            ttl: Time the entry stays valid; zero means already stale
        """


@dataclass
class CachedToken:
    """A cached token and its absolute expiry on the monotonic clock."""

    token: TokenResponse
    expires_at: float


class MemoryTokenCacheProvider(TokenCacheProvider):
    """In-memory token cache with per-entry expiration."""

    def __init__(self) -> None:
        self._cache: Dict[str, CachedToken] = {}

    async def try_get_token(self, key: str) -> Tuple[bool, Optional[TokenResponse]]:
        cached = self._cache.get(key)
        if cached is None:
            return False, None

        if time.monotonic() >= cached.expires_at:
            logger.debug(f"Cached token for '{key}' has expired. Removing from cache.")
            del self._cache[key]
            return False, None

        return True, cached.token

    async def set(self, key: str, value: TokenResponse, ttl: timedelta) -> None:
        self.purge_expired()
        seconds = max(0.0, ttl.total_seconds())
        self._cache[key] = CachedToken(
            token=value, expires_at=time.monotonic() + seconds
        )
        logger.debug(f"Cached token for '{key}' (expires in {seconds:.0f}s)")

    def purge_expired(self) -> int:
        """Remove expired entries. Returns the number removed."""
        now = time.monotonic()
        expired = [k for k, v in self._cache.items() if now >= v.expires_at]
        for key in expired:
            del self._cache[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired token(s) from cache")
        return len(expired)

    def clear(self) -> None:
        """Remove all cached tokens."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
