from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from .auth import AuthNegotiator, PendingRequest
from .errors import TransportError

DEFAULT_ACCEPT = (
    "application/rdf+xml, text/turtle;q=0.9, application/ld+json;q=0.8, "
    "application/json;q=0.7, application/xml;q=0.6, text/xml;q=0.5, */*;q=0.1"
)
OSLC_CORE_VERSION = "2.0"
CONFIGURATION_CONTEXT_HEADER = "Configuration-Context"
DEFAULT_TIMEOUT_SECONDS = 30.0


def default_headers(configuration_context: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "Accept": DEFAULT_ACCEPT,
        "OSLC-Core-Version": OSLC_CORE_VERSION,
    }
    if configuration_context:
        headers[CONFIGURATION_CONTEXT_HEADER] = configuration_context
    return headers


class Transport:
    """
    The HTTP connection shared by everything one `OSLCClient` does.
    - Owns (or borrows) an `httpx.AsyncClient` whose cookie jar holds the
      session for this client only
    - Runs every response through the `AuthNegotiator`
    - Maps network/timeout failures to `TransportError`; status codes are
      left to the caller
    """

    def __init__(
        self,
        *,
        negotiator: Optional[AuthNegotiator] = None,
        configuration_context: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        cookies: Optional[httpx.Cookies] = None,
        http: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.negotiator = negotiator
        self.log = logger or logging.getLogger("oslc_client.transport")

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            headers=default_headers(configuration_context),
            cookies=cookies,
            timeout=timeout_seconds,
            follow_redirects=True,
        )
        if http is not None:
            # headers the caller set on a borrowed client win; httpx's own
            # "Accept: */*" default does not count
            for name, value in default_headers().items():
                if self.http.headers.get(name, "*/*") == "*/*":
                    self.http.headers[name] = value
            if configuration_context:
                self.http.headers[CONFIGURATION_CONTEXT_HEADER] = configuration_context
            if cookies is not None:
                self.http.cookies.update(cookies)

    @property
    def cookies(self) -> httpx.Cookies:
        return self.http.cookies

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request as-is, without authentication negotiation."""
        method = method.upper()
        start = time.perf_counter()
        try:
            resp = await self.http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"Timeout calling {method} {url}: {exc}", method=method, url=url
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Network error calling {method} {url}: {exc}", method=method, url=url
            ) from exc

        duration_ms = int((time.perf_counter() - start) * 1000)
        self.log.debug(
            "oslc.request",
            extra={
                "method": method,
                "url": url,
                "status": resp.status_code,
                "duration_ms": duration_ms,
            },
        )
        return resp

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, transparently answering at most one auth challenge."""
        response = await self.send(method, url, **kwargs)
        if self.negotiator is None:
            return response
        pending = PendingRequest(method.upper(), url, kwargs)
        return await self.negotiator.negotiate(self, pending, response)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)


__all__ = [
    "CONFIGURATION_CONTEXT_HEADER",
    "DEFAULT_ACCEPT",
    "DEFAULT_TIMEOUT_SECONDS",
    "OSLC_CORE_VERSION",
    "Transport",
    "default_headers",
]
