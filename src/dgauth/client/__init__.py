"""HTTP transport for dgauth.

:class:`AsyncClient` wraps :class:`httpx.AsyncClient` with the
authentication interceptor, retry with exponential backoff, and mapping of
error statuses to :mod:`dgauth.exceptions`.

Example::

    from dgauth.client import AsyncClient

    async with AsyncClient(profile, interceptor=interceptor) as client:
        resp = await client.get("/orders")
"""

from dgauth.client.async_client import AsyncClient

__all__ = ["AsyncClient"]
