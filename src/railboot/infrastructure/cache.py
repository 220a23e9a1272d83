"""Short-lived cache connectivity check."""

from __future__ import annotations

import redis


def ping(url: str, *, timeout: int | None = None) -> bool:
    """Connect to the Redis server at *url*, send ``PING`` and disconnect."""
    client = redis.Redis.from_url(
        url,
        socket_connect_timeout=timeout,
        socket_timeout=timeout,
    )
    try:
        return bool(client.ping())
    finally:
        client.close()
