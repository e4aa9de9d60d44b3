from typing import Optional

MAX_BODY_SNIPPET = 500


def body_snippet(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return text[:MAX_BODY_SNIPPET]


class OSLCClientError(Exception):
    """Base error for client failures."""


class TransportError(OSLCClientError):
    """Network failure (connect error, timeout) talking to an OSLC server."""

    def __init__(self, message: str, *, method: str = "", url: str = ""):
        super().__init__(message)
        self.method = method
        self.url = url


class OSLCHTTPError(TransportError):
    def __init__(
        self,
        *,
        status_code: int,
        method: str,
        url: str,
        message: str,
        response_text: Optional[str] = None,
    ):
        full = f"{status_code} {method} {url}: {message}"
        if response_text:
            full = f"{full}\n{response_text}"
        super().__init__(full, method=method, url=url)
        self.status_code = status_code
        self.response_text = response_text


class AuthenticationFailedError(OSLCHTTPError):
    """Raised when a request is still challenged after its single auth retry."""


class AuthExchangeError(OSLCClientError):
    """Raised when a login or token exchange itself fails."""

    def __init__(self, message: str, *, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DiscoveryError(OSLCClientError):
    """A step of the rootservices -> catalog -> provider chain failed."""

    def __init__(self, message: str, *, step: str = "", url: str = ""):
        super().__init__(message)
        self.step = step
        self.url = url


class DomainNotAvailableError(DiscoveryError):
    pass


class ProviderNotFoundError(DiscoveryError):
    pass


class CapabilityError(OSLCClientError):
    """No query or creation capability for the requested resource type."""

    def __init__(self, message: str, *, resource_type: str = ""):
        super().__init__(message)
        self.resource_type = resource_type


class OSLCParseError(OSLCClientError):
    def __init__(self, message: str, *, url: str = "", content_type: str = ""):
        super().__init__(message)
        self.url = url
        self.content_type = content_type


__all__ = [
    "OSLCClientError",
    "TransportError",
    "OSLCHTTPError",
    "AuthenticationFailedError",
    "AuthExchangeError",
    "DiscoveryError",
    "DomainNotAvailableError",
    "ProviderNotFoundError",
    "CapabilityError",
    "OSLCParseError",
    "body_snippet",
]
