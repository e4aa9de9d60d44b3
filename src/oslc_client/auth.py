"""
Authentication negotiation for Jazz-style OSLC servers.

Responses are inspected once by an ordered list of challenge handlers. The
first handler that recognizes a challenge performs its credential exchange
and returns the request to retry; the retry is sent exactly once. A retried
response that is still challenged raises `AuthenticationFailedError`.

Handlers, in priority order:

* `FormChallenge` -- JEE form login, signalled by the
  `X-com-ibm-team-repository-web-auth-msg: authrequired` header
* `TokenRealmChallenge` -- 401 with a `jauth realm` WWW-Authenticate
  challenge naming a `token_uri`
* `BasicChallenge` -- any other 401
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Dict, NamedTuple, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

import httpx

from .errors import AuthenticationFailedError, AuthExchangeError, TransportError, body_snippet
from .observability import log_event

if TYPE_CHECKING:
    from .transport import Transport

logger = logging.getLogger(__name__)

FORM_AUTH_HEADER = "X-com-ibm-team-repository-web-auth-msg"
FORM_AUTH_REQUIRED = "authrequired"
FORM_AUTH_FAILED = "authfailed"
FORM_LOGIN_PATH = "j_security_check"
TOKEN_REALM = "jauth realm"
TOKEN_URI_PATTERN = re.compile(r'token_uri="([^"]+)"')


class Credentials(NamedTuple):
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class PendingRequest:
    """The arguments of a request, kept so it can be re-issued after an
    authentication exchange (re-issuing picks up any new session cookies)."""

    method: str
    url: str
    kwargs: Dict[str, Any] = field(default_factory=dict)

    def with_headers(self, headers: Dict[str, str]) -> "PendingRequest":
        merged = dict(self.kwargs.get("headers") or {})
        merged.update(headers)
        return replace(self, kwargs={**self.kwargs, "headers": merged})

    def with_auth(self, auth: httpx.Auth) -> "PendingRequest":
        return replace(self, kwargs={**self.kwargs, "auth": auth})


def login_url_for(url: str) -> str:
    """
    Form login endpoint for the web application serving `url`: the
    `j_security_check` resource under its context root.

    ```pycon
    >>> login_url_for('https://jazz.example.com:9443/ccm/rootservices')
    'https://jazz.example.com:9443/ccm/j_security_check'

    >>> login_url_for('https://jazz.example.com/')
    'https://jazz.example.com/j_security_check'
    ```
    """
    parts = urlsplit(url)
    segments = [s for s in parts.path.split("/") if s]
    path = f"/{segments[0]}/{FORM_LOGIN_PATH}" if segments else f"/{FORM_LOGIN_PATH}"
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


class ChallengeHandler:
    """Detects one kind of authentication challenge and satisfies it."""

    name = "challenge"

    def detect(self, response: httpx.Response) -> bool:
        raise NotImplementedError

    async def respond(
        self,
        transport: "Transport",
        pending: PendingRequest,
        response: httpx.Response,
        credentials: Credentials,
    ) -> PendingRequest:
        """Perform the credential exchange and return the request to retry."""
        raise NotImplementedError


class FormChallenge(ChallengeHandler):
    name = "form"

    def detect(self, response: httpx.Response) -> bool:
        return response.headers.get(FORM_AUTH_HEADER, "").lower() == FORM_AUTH_REQUIRED

    async def respond(self, transport, pending, response, credentials):
        login_url = login_url_for(pending.url)
        try:
            login = await transport.send(
                "POST",
                login_url,
                data={"j_username": credentials.username, "j_password": credentials.password},
                follow_redirects=False,
            )
        except TransportError as exc:
            raise AuthExchangeError(f"Form login at {login_url} failed: {exc}", url=login_url) from exc

        if login.headers.get(FORM_AUTH_HEADER, "").lower() == FORM_AUTH_FAILED:
            raise AuthExchangeError(
                f"Form login at {login_url} was rejected", url=login_url, status_code=login.status_code
            )
        # a successful j_security_check answers with a redirect
        if not 300 <= login.status_code < 400:
            raise AuthExchangeError(
                f"Form login at {login_url} failed with status {login.status_code}: "
                f"{body_snippet(login.text)}",
                url=login_url,
                status_code=login.status_code,
            )
        return pending


class TokenRealmChallenge(ChallengeHandler):
    name = "token"

    def detect(self, response: httpx.Response) -> bool:
        return (
            response.status_code == httpx.codes.UNAUTHORIZED
            and TOKEN_REALM in response.headers.get("WWW-Authenticate", "")
        )

    async def respond(self, transport, pending, response, credentials):
        challenge = response.headers.get("WWW-Authenticate", "")
        match = TOKEN_URI_PATTERN.search(challenge)
        if not match:
            raise AuthExchangeError(f"No token_uri found in jauth challenge from {pending.url}", url=pending.url)
        token_uri = match.group(1)
        try:
            token_response = await transport.send(
                "POST",
                token_uri,
                data={"username": credentials.username, "password": credentials.password},
                headers={"Accept": "text/plain"},
            )
        except TransportError as exc:
            raise AuthExchangeError(f"Token request to {token_uri} failed: {exc}", url=token_uri) from exc

        if not token_response.is_success:
            raise AuthExchangeError(
                f"Token request to {token_uri} failed with status {token_response.status_code}: "
                f"{body_snippet(token_response.text)}",
                url=token_uri,
                status_code=token_response.status_code,
            )
        token = token_response.text.strip()
        return pending.with_headers({"Authorization": f"Bearer {token}"})


class BasicChallenge(ChallengeHandler):
    name = "basic"

    def detect(self, response: httpx.Response) -> bool:
        return response.status_code == httpx.codes.UNAUTHORIZED

    async def respond(self, transport, pending, response, credentials):
        return pending.with_auth(httpx.BasicAuth(credentials.username, credentials.password))


DEFAULT_HANDLERS: Sequence[ChallengeHandler] = (
    FormChallenge(),
    TokenRealmChallenge(),
    BasicChallenge(),
)


class AuthNegotiator:
    def __init__(
        self,
        username: str,
        password: str,
        handlers: Optional[Sequence[ChallengeHandler]] = None,
    ):
        self.credentials = Credentials(username, password)
        self.handlers = tuple(handlers if handlers is not None else DEFAULT_HANDLERS)

    def match(self, response: httpx.Response) -> Optional[ChallengeHandler]:
        for handler in self.handlers:
            if handler.detect(response):
                return handler
        return None

    async def negotiate(
        self,
        transport: "Transport",
        pending: PendingRequest,
        response: httpx.Response,
    ) -> httpx.Response:
        handler = self.match(response)
        if handler is None:
            return response

        log_event(
            "oslc.auth.challenge",
            logger=logger,
            challenge=handler.name,
            method=pending.method,
            url=pending.url,
            status=response.status_code,
        )
        retry = await handler.respond(transport, pending, response, self.credentials)
        retried = await transport.send(retry.method, retry.url, **retry.kwargs)

        if self.match(retried) is not None:
            raise AuthenticationFailedError(
                status_code=retried.status_code,
                method=pending.method,
                url=pending.url,
                message=f"authentication failed after {handler.name} challenge",
                response_text=body_snippet(retried.text),
            )
        return retried


__all__ = [
    "AuthNegotiator",
    "BasicChallenge",
    "ChallengeHandler",
    "Credentials",
    "DEFAULT_HANDLERS",
    "FormChallenge",
    "PendingRequest",
    "TokenRealmChallenge",
    "login_url_for",
]
