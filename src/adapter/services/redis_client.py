from redis.asyncio import Redis


def create_redis_client(config) -> Redis:
    """
    Build the process-wide Redis client (one connection pool per process).

    Command and connect timeouts are short so a degraded store cannot stall
    request handling; callers treat a timeout as a store error.
    """
    return Redis.from_url(
        config.REDIS_URL,
        socket_timeout=config.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=config.REDIS_CONNECT_TIMEOUT,
        decode_responses=True,
    )
