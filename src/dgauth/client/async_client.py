"""Asynchronous HTTP transport with authentication interception.

This module provides :class:`AsyncClient`, a thin wrapper around
:class:`httpx.AsyncClient` that routes every request through a
:class:`~dgauth.interceptor.RequestInterceptor`:

1. the interceptor publishes the outgoing request so that it can be stamped
   with credentials;
2. the request is sent, retrying 5xx responses and connection errors with
   exponential backoff;
3. error statuses are mapped to :mod:`dgauth.exceptions` types;
4. failures are handed back to the interceptor, which either re-raises them
   or, for an authentication challenge, waits for the replayed response.

The orchestrator uses the same client to perform the sign-in and sign-out
exchanges and to replay suspended requests.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from dgauth.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    RequestError,
    ServerError,
)
from dgauth.models import Profile

if TYPE_CHECKING:
    from dgauth.interceptor import RequestInterceptor

logger = logging.getLogger(__name__)


class AsyncClient:
    """Asynchronous HTTP client for calls to a protected API.

    Must be used as an async context manager.

    Args:
        profile: The connection profile containing ``base_url`` and request
            settings (timeout, retries, SSL verify).
        interceptor: Optional interceptor; when ``None`` requests are sent
            as-is and failures are raised directly.
        transport: Optional :class:`httpx.AsyncBaseTransport`, used by tests
            to plug in :class:`httpx.MockTransport`.

    Example::

        async with AsyncClient(profile, interceptor=interceptor) as client:
            response = await client.get("/orders")
    """

    def __init__(
        self,
        profile: Profile,
        interceptor: Optional[RequestInterceptor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._profile = profile
        self._interceptor = interceptor
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def interceptor(self) -> Optional[RequestInterceptor]:
        return self._interceptor

    @interceptor.setter
    def interceptor(self, interceptor: Optional[RequestInterceptor]) -> None:
        self._interceptor = interceptor

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncClient:
        config = self._profile.request
        self._client = httpx.AsyncClient(
            base_url=self._profile.base_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def build_request(self, method: str, url: str, **kwargs: Any) -> httpx.Request:
        """Build a request against the profile's base URL, merging client cookies."""
        return self._require_client().build_request(method, url, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Build and send a request.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE).
            path: URL path appended to the profile's ``base_url``.
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            body: Raw string body.
            data: Form-encoded body.

        Returns:
            The :class:`httpx.Response`; after an authentication challenge,
            the response of the replayed request.

        Raises:
            AuthError: On 401 / 403 that could not be answered.
            NotFoundError: On 404.
            ServerError: On other error statuses after all retries.
            ConnectionError_: On network / timeout errors after all retries.
        """
        kwargs: dict[str, Any] = {"params": params, "headers": headers}
        if data is not None:
            kwargs["data"] = data
        elif json_body is not None:
            kwargs["json"] = json_body
        elif body is not None:
            kwargs["content"] = body
        return await self.send(self.build_request(method.upper(), path, **kwargs))

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    async def send(self, request: httpx.Request, retry: bool = True) -> httpx.Response:
        """Send *request* through the interceptor pipeline.

        With ``retry=False`` the request goes on the wire exactly once, as
        the sign-in and sign-out exchanges must.

        Raises:
            RequestError: The mapped failure, unless the interceptor answered
                an authentication challenge with a replayed response.
        """
        # Replays need the body in memory.
        await request.aread()
        if "cookie" not in request.headers:
            self._require_client().cookies.set_cookie_header(request)

        if self._interceptor is not None:
            request = self._interceptor.process_request(request)

        try:
            response = await self._execute_with_retry(request, retry)
            self._raise_for_status(request, response)
        except RequestError as failure:
            if self._interceptor is None:
                raise
            return await self._interceptor.process_failure(failure)
        return response

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_client(self) -> httpx.AsyncClient:
        assert self._client is not None, "Client not initialised -- use as async context manager"
        return self._client

    async def _execute_with_retry(self, request: httpx.Request, retry: bool = True) -> httpx.Response:
        """Send with exponential-backoff retry on 5xx and connection errors.

        The delay doubles each attempt: 1 s, 2 s, 4 s, ... Any other httpx
        failure (protocol errors, redirect loops, ...) is raised as
        :class:`ConnectionError_` without retrying.
        """
        client = self._require_client()
        max_retries = self._profile.request.max_retries if retry else 0

        for attempt in range(max_retries + 1):
            try:
                response = await client.send(request)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    logger.debug(
                        "Connection error: %s, retrying in %ss (attempt %d/%d)",
                        exc, delay, attempt + 1, max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}",
                    request=request,
                ) from exc
            except httpx.HTTPError as exc:
                raise ConnectionError_(f"Request failed: {exc}", request=request) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                logger.debug(
                    "Server error %d, retrying in %ss (attempt %d/%d)",
                    response.status_code, delay, attempt + 1, max_retries,
                )
                await response.aclose()
                await asyncio.sleep(delay)
                continue

            return response

        raise ServerError("Request failed after all retries", request=request)  # pragma: no cover

    def _raise_for_status(self, request: httpx.Request, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            raise AuthError(full_msg, request=request, response=response)
        if status == 404:
            raise NotFoundError(full_msg, request=request, response=response)
        raise ServerError(full_msg, request=request, response=response)
