"""Redis client and the logout token blacklist.

The blacklist has to be shared by every worker serving the API, so it lives
in Redis when Redis is reachable. Without Redis it degrades to a
process-local map, which is enough for a single-process deployment. Both
backends forget an entry once the token it revokes has expired.

For a managed Redis:
- Set REDIS_HOST to the instance address
- Set REDIS_PASSWORD if authentication is enabled
"""
import hashlib
import threading
import time
import redis
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from app.core.logging import get_logger
from app.core.config import settings

logger = get_logger(__name__)

# Redis connection pool (lazy initialization)
_redis_pool: Optional[redis.ConnectionPool] = None
_redis_client: Optional[redis.Redis] = None

# After a failed connection, further attempts wait this long (seconds)
REDIS_RETRY_INTERVAL = 30
_redis_failed_at: Optional[float] = None

_blacklist: Optional["TokenBlacklist"] = None
_blacklist_lock = threading.Lock()


def get_redis_client(
    host: Optional[str] = None,
    port: Optional[int] = None,
    db: Optional[int] = None,
    password: Optional[str] = None,
) -> Optional[redis.Redis]:
    """Get or create Redis client with connection pooling.

    Uses settings from environment variables if not explicitly provided.
    Returns None if Redis is not available (graceful fallback). A failed
    connection is not retried for ``REDIS_RETRY_INTERVAL`` seconds.
    """
    global _redis_pool, _redis_client, _redis_failed_at

    host = host or settings.redis_host
    port = port or settings.redis_port
    db = db if db is not None else settings.redis_db
    password = password or settings.redis_password

    if _redis_client is None:
        if _redis_failed_at is not None and time.monotonic() - _redis_failed_at < REDIS_RETRY_INTERVAL:
            return None

        logger.info(f"Initializing Redis connection pool: {host}:{port}")

        try:
            _redis_pool = redis.ConnectionPool(
                host=host,
                port=port,
                db=db,
                password=password,
                decode_responses=True,
                max_connections=20,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            client = redis.Redis(connection_pool=_redis_pool)
            client.ping()
            _redis_client = client
            _redis_failed_at = None
            logger.info("Redis connection established successfully")

        except redis.RedisError as e:
            logger.warning(f"Redis unavailable, token blacklist stays in memory: {e}")
            _redis_pool = None
            _redis_failed_at = time.monotonic()
            return None

    return _redis_client


class TokenBlacklist:
    """Set of revoked access tokens.

    Tokens are stored by SHA-256 digest. In Redis each entry expires together
    with the token it revokes, since an expired token is rejected anyway.

    Example:
        >>> blacklist = TokenBlacklist()
        >>> blacklist.add(token, expires_at=datetime.now(timezone.utc) + timedelta(days=1))
        >>> token in blacklist
        True
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: str = "blacklist:",
        default_ttl: timedelta = timedelta(minutes=settings.access_token_expire_minutes),
    ):
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl
        # key -> expiry of the revoked token
        self._memory: Dict[str, datetime] = {}
        self._lock = threading.Lock()

        backend = "redis" if self.redis is not None else "memory"
        logger.info(f"TokenBlacklist initialized ({backend} backend)")

    def _make_key(self, token: str) -> str:
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return f"{self.key_prefix}{digest}"

    def _ttl_for(self, expires_at: Optional[datetime]) -> timedelta:
        if expires_at is None:
            return self.default_ttl
        remaining = expires_at - datetime.now(timezone.utc)
        # Redis rejects non-positive expirations
        return max(remaining, timedelta(seconds=1))

    def _purge_expired(self, now: datetime) -> None:
        for key in [k for k, expiry in self._memory.items() if expiry <= now]:
            del self._memory[key]

    def add(self, token: str, expires_at: Optional[datetime] = None) -> None:
        """Revoke a token. ``expires_at`` is the token's own expiry (UTC)."""
        key = self._make_key(token)
        ttl = self._ttl_for(expires_at)

        if self.redis is not None:
            try:
                self.redis.setex(key, ttl, "1")
                logger.debug("Token blacklisted in Redis")
                return
            except redis.RedisError as e:
                logger.error(f"Error blacklisting token in Redis, keeping it in memory: {e}", exc_info=True)

        now = datetime.now(timezone.utc)
        with self._lock:
            self._purge_expired(now)
            self._memory[key] = now + ttl
        logger.debug("Token blacklisted in memory")

    def contains(self, token: str) -> bool:
        """Return True when the token has been revoked."""
        key = self._make_key(token)

        with self._lock:
            expiry = self._memory.get(key)
            if expiry is not None:
                if expiry > datetime.now(timezone.utc):
                    return True
                del self._memory[key]

        if self.redis is not None:
            try:
                return bool(self.redis.exists(key))
            except redis.RedisError as e:
                logger.error(f"Error checking token blacklist in Redis: {e}", exc_info=True)

        return False

    def __contains__(self, token: str) -> bool:
        return self.contains(token)

    def clear(self) -> None:
        """Forget every in-memory entry (Redis entries expire on their own)."""
        with self._lock:
            self._memory.clear()


def get_token_blacklist() -> TokenBlacklist:
    """Return the process-wide blacklist, connecting to Redis on first use."""
    global _blacklist

    if _blacklist is None:
        with _blacklist_lock:
            if _blacklist is None:
                _blacklist = TokenBlacklist(redis_client=get_redis_client())

    return _blacklist


def reset_token_blacklist() -> None:
    """Drop the process-wide blacklist so the next call builds a fresh one."""
    global _blacklist

    with _blacklist_lock:
        _blacklist = None
