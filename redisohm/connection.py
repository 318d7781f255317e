"""Process-wide Redis connection configuration.

Models share a single client unless a model class sets ``__redis__``.
The client is created lazily from ``REDISOHM_URL`` (or the default URL)
the first time it is needed, or explicitly with ``connect()``.

Example:
    import redisohm

    redisohm.connect("redis://localhost:6379/0")
    redisohm.connect("memory://")    # in-process server for tests
"""

import logging
import os
from typing import Any, Optional
from urllib.parse import urlparse

import redis

try:
    import fakeredis

    FAKEREDIS_AVAILABLE = True
except ImportError:
    FAKEREDIS_AVAILABLE = False
    fakeredis = None


logger = logging.getLogger(__name__)

DEFAULT_URL = "redis://localhost:6379"
URL_ENV_VAR = "REDISOHM_URL"

_redis: Optional[Any] = None


def connect(url: Optional[str] = None, **kwargs: Any) -> Any:
    """Connect to Redis using a URL and make it the process-wide client.

    Supported URL schemes:
        - redis://host:port/db     TCP connection
        - rediss://host:port/db    TLS connection
        - unix:///path/redis.sock  Unix socket
        - memory://                In-process fake server (testing)

    Args:
        url: Connection URL; defaults to $REDISOHM_URL or DEFAULT_URL
        **kwargs: Extra keyword arguments for the client constructor

    Returns:
        The connected client

    Raises:
        ValueError: If the URL scheme is not supported
        RuntimeError: If memory:// is requested without fakeredis installed
    """
    global _redis

    url = url or os.environ.get(URL_ENV_VAR, DEFAULT_URL)
    scheme = urlparse(url).scheme

    if scheme in ("redis", "rediss", "unix"):
        client = redis.Redis.from_url(url, decode_responses=True, **kwargs)

    elif scheme == "memory":
        if not FAKEREDIS_AVAILABLE:
            raise RuntimeError(
                "fakeredis is not installed. Install with: pip install redisohm[memory]"
            )
        client = fakeredis.FakeRedis(decode_responses=True, **kwargs)

    else:
        raise ValueError(f"Unknown Redis URL scheme: {scheme}")

    logger.debug("Connected to %s", url)
    _redis = client
    return client


def get_redis() -> Any:
    """Return the process-wide client, connecting on first use."""
    if _redis is None:
        return connect()
    return _redis


def set_redis(client: Any) -> None:
    """Replace the process-wide client."""
    global _redis
    _redis = client


def reset() -> None:
    """Forget the process-wide client; the next use reconnects."""
    global _redis
    _redis = None
