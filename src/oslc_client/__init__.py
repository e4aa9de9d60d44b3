"""oslc_client package exports."""

from .auth import (
    AuthNegotiator,
    BasicChallenge,
    ChallengeHandler,
    FormChallenge,
    TokenRealmChallenge,
)
from .cache import OwnerCache
from .client import AtomFeed, OSLCClient, XmlDocument
from .compact import Compact, PreviewInfo
from .config import OSLCSettings, create_client_from_env, load_env_config
from .discovery import RootServices, ServiceProvider, ServiceProviderCatalog
from .errors import (
    AuthenticationFailedError,
    AuthExchangeError,
    CapabilityError,
    DiscoveryError,
    DomainNotAvailableError,
    OSLCClientError,
    OSLCHTTPError,
    OSLCParseError,
    ProviderNotFoundError,
    TransportError,
)
from .query import QueryParams
from .resource import OSLCResource
from .transport import Transport

__all__ = [
    # Client
    "OSLCClient",
    "Transport",
    "XmlDocument",
    "AtomFeed",
    # Resources
    "OSLCResource",
    "Compact",
    "PreviewInfo",
    "RootServices",
    "ServiceProviderCatalog",
    "ServiceProvider",
    "QueryParams",
    "OwnerCache",
    # Authentication
    "AuthNegotiator",
    "ChallengeHandler",
    "FormChallenge",
    "TokenRealmChallenge",
    "BasicChallenge",
    # Exceptions
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
    # Config helpers
    "OSLCSettings",
    "create_client_from_env",
    "load_env_config",
]
