import httpx


async def get_http_transport() -> httpx.AsyncBaseTransport | None:
    """Outbound transport for the resolver; None means the real network."""
    return None
