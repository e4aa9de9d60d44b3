from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Type, TypeVar, Union

import httpx
from lxml import etree
from rdflib import Graph, URIRef

from .auth import AuthNegotiator, ChallengeHandler
from .cache import DEFAULT_MAX_SIZE, OwnerCache
from .compact import Compact
from .discovery import RootServices, ServiceProvider, ServiceProviderCatalog, catalog_predicate
from .errors import (
    CapabilityError,
    DiscoveryError,
    DomainNotAvailableError,
    OSLCClientError,
    OSLCHTTPError,
    OSLCParseError,
    ProviderNotFoundError,
    TransportError,
    body_snippet,
)
from .namespaces import foaf, oslc, rdfs
from .observability import log_event
from .query import QueryParams, build_query_url, media_type, rdf_format
from .resource import OSLCResource
from .transport import DEFAULT_TIMEOUT_SECONDS, OSLC_CORE_VERSION, Transport

R = TypeVar("R", bound=OSLCResource)

RDF_XML = "application/rdf+xml"
RDF_XML_UTF8 = "application/rdf+xml; charset=utf-8"
COMPACT_XML = "application/x-oslc-compact+xml"
XML_MEDIA_TYPES = {"text/xml", "application/xml"}
ATOM_MEDIA_TYPE = "application/atom+xml"
CSRF_HEADER = "X-Jazz-CSRF-Prevent"
CSRF_DEFAULT = "1"
SESSION_COOKIE = "JSESSIONID"
UNKNOWN_OWNER = "Unknown"

QUERY_BASE_SPARQL = """
PREFIX oslc: <http://open-services.net/ns/core#>
SELECT ?qb WHERE {
    ?sp oslc:service ?s .
    ?s oslc:queryCapability ?qc .
    ?qc oslc:resourceType ?resourceType .
    ?qc oslc:queryBase ?qb .
}
"""

CREATION_FACTORY_SPARQL = """
PREFIX oslc: <http://open-services.net/ns/core#>
SELECT ?cfurl WHERE {
    ?sp oslc:service ?s .
    ?s oslc:creationFactory ?cf .
    ?cf oslc:usage ?usage .
    ?cf oslc:creation ?cfurl .
}
"""


@dataclass(frozen=True)
class XmlDocument:
    """A plain XML (not RDF) response."""

    etag: Optional[str]
    xml: Any


@dataclass(frozen=True)
class AtomFeed:
    """An Atom feed response, returned as its raw text."""

    etag: Optional[str]
    feed: str


ReadResult = Union[OSLCResource, XmlDocument, AtomFeed]


class OSLCClient:
    """
    Client for OSLC servers (IBM Jazz/ELM and compatible).
    - `use()` discovers the service provider for a project area
    - Reads, creates, updates, deletes and queries OSLC resources
    - Authentication challenges are answered by the shared `Transport`
    """

    def __init__(
        self,
        *,
        username: str,
        password: str,
        configuration_context: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        owner_cache_size: int = DEFAULT_MAX_SIZE,
        xml_parser: Optional[Callable[[bytes], Any]] = None,
        cookies: Optional[httpx.Cookies] = None,
        handlers: Optional[Sequence[ChallengeHandler]] = None,
        http: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not username:
            raise ValueError("username must be provided.")

        self.configuration_context = configuration_context
        self.log = logger or logging.getLogger("oslc_client.client")
        self.xml_parser = xml_parser or etree.fromstring
        self.transport = Transport(
            negotiator=AuthNegotiator(username, password or "", handlers=handlers),
            configuration_context=configuration_context,
            timeout_seconds=timeout_seconds,
            cookies=cookies,
            http=http,
        )
        self.owner_cache = OwnerCache(max_size=owner_cache_size)

        self.base_url: Optional[str] = None
        self.rootservices: Optional[RootServices] = None
        self.catalog: Optional[ServiceProviderCatalog] = None
        self.service_provider: Optional[ServiceProvider] = None

    @classmethod
    def from_env(cls, **kwargs) -> "OSLCClient":
        from .config import create_client_from_env

        return create_client_from_env(**kwargs)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "OSLCClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --- Discovery --------------------------------------------------------- #

    async def use(self, server_url: str, service_provider_title: str, domain: str = "CM") -> ServiceProvider:
        """
        Discover and select the service provider titled
        `service_provider_title` in the `domain` ("CM", "RM" or "QM") catalog
        of the server at `server_url` (e.g. `https://jazz.example.com/ccm`).
        """
        predicate = catalog_predicate(domain)
        self.base_url = server_url[:-1] if server_url.endswith("/") else server_url

        rootservices_url = f"{self.base_url}/rootservices"
        self.rootservices = await self._discover("rootservices", rootservices_url, RootServices)

        catalog_url = self.rootservices.service_provider_catalog(predicate)
        if not catalog_url:
            raise DomainNotAvailableError(
                f"No ServiceProviderCatalog for {domain} services in {rootservices_url}",
                step="rootservices",
                url=rootservices_url,
            )
        self.catalog = await self._discover("catalog", catalog_url, ServiceProviderCatalog)

        provider_url = self.catalog.service_provider(service_provider_title)
        if not provider_url:
            raise ProviderNotFoundError(
                f"{service_provider_title} not found in service catalog {catalog_url}",
                step="catalog",
                url=catalog_url,
            )
        self.service_provider = await self._discover("provider", provider_url, ServiceProvider)
        log_event(
            "oslc.discovery.complete",
            logger=self.log,
            domain=domain,
            url=provider_url,
        )
        return self.service_provider

    async def _discover(self, step: str, url: str, model: Type[R]) -> R:
        log_event("oslc.discovery", logger=self.log, step=step, url=url)
        try:
            result = await self.get_resource(url)
        except (TransportError, OSLCParseError) as exc:
            raise DiscoveryError(f"Failed to fetch {step} document {url}: {exc}", step=step, url=url) from exc
        if not isinstance(result, OSLCResource):
            raise DiscoveryError(f"The {step} document at {url} is not RDF", step=step, url=url)
        return model(result.query_uri, result.graph, result.etag)

    def _require_provider(self) -> ServiceProvider:
        if self.service_provider is None:
            raise DiscoveryError("ServiceProvider not initialized. Call use() first.")
        return self.service_provider

    # --- Reading ----------------------------------------------------------- #

    async def get_resource(
        self,
        url: str,
        oslc_version: str = OSLC_CORE_VERSION,
        accept: str = RDF_XML,
    ) -> ReadResult:
        """
        GET `url` and return, depending on the response Content-Type:
        - `XmlDocument` for text/xml or application/xml
        - `AtomFeed` for application/atom+xml
        - otherwise an `OSLCResource` over the parsed RDF, with its ETag
        """
        headers = {"Accept": accept, "OSLC-Core-Version": oslc_version}
        response = await self.transport.get(url, headers=headers)
        if not response.is_success:
            raise self._http_error(response, "GET", url, "failed to read resource")

        etag = response.headers.get("ETag")
        content_type = media_type(response.headers.get("Content-Type"))
        if content_type in XML_MEDIA_TYPES:
            try:
                xml = self.xml_parser(response.content)
            except etree.XMLSyntaxError as exc:
                raise OSLCParseError(
                    f"Invalid XML from GET {url}: {exc}", url=url, content_type=content_type
                ) from exc
            return XmlDocument(etag=etag, xml=xml)
        if content_type == ATOM_MEDIA_TYPE:
            return AtomFeed(etag=etag, feed=response.text)

        graph = self._parse_graph(response, url)
        return OSLCResource(url, graph, etag)

    async def get_compact_resource(
        self,
        url: str,
        oslc_version: str = OSLC_CORE_VERSION,
        accept: str = COMPACT_XML,
    ) -> Compact:
        headers = {"Accept": accept, "OSLC-Core-Version": oslc_version}
        response = await self.transport.get(url, headers=headers)
        if not response.is_success:
            raise self._http_error(response, "GET", url, "failed to read compact resource")
        # the compact media type is RDF/XML
        graph = self._parse_graph(response, url, content_type=RDF_XML)
        return Compact(url, graph, response.headers.get("ETag"))

    # --- Writing ----------------------------------------------------------- #

    async def create_resource(
        self,
        resource_type: Union[str, URIRef],
        resource: OSLCResource,
        oslc_version: str = OSLC_CORE_VERSION,
    ) -> ReadResult:
        """
        POST `resource` to the creation factory for `resource_type` and
        return the created resource as read back from its new location.
        """
        provider = self._require_provider()
        factory = provider.get_creation_factory(resource_type)
        if not factory:
            raise CapabilityError(f"No creation factory found for {resource_type}", resource_type=str(resource_type))

        headers = {
            "Content-Type": RDF_XML_UTF8,
            "Accept": RDF_XML_UTF8,
            "OSLC-Core-Version": oslc_version,
        }
        response = await self.transport.post(factory, content=resource.serialize(), headers=headers)
        if response.status_code not in (httpx.codes.OK, httpx.codes.CREATED):
            raise self._http_error(response, "POST", factory, "failed to create resource")

        location = response.headers.get("Location")
        if not location:
            raise OSLCClientError(f"No Location header in response from POST {factory}")
        created_url = str(httpx.URL(factory).join(location))
        self.log.info("Created %s", created_url)
        return await self.get_resource(created_url)

    async def put_resource(
        self,
        resource: OSLCResource,
        etag: Optional[str] = None,
        oslc_version: str = OSLC_CORE_VERSION,
    ) -> OSLCResource:
        """
        PUT the resource's graph back to its URI. When `etag` is given it is
        sent as `If-Match`, so a stale token fails with 412.
        """
        url = resource.get_uri()
        headers = {
            "OSLC-Core-Version": oslc_version,
            "Content-Type": RDF_XML_UTF8,
            "Accept": RDF_XML,
        }
        if etag:
            headers["If-Match"] = etag
        response = await self.transport.put(url, content=resource.serialize(), headers=headers)
        if not response.is_success:
            raise self._http_error(response, "PUT", url, f"failed to update resource {url}")
        resource.etag = response.headers.get("ETag", resource.etag)
        return resource

    async def delete_resource(self, resource: OSLCResource, oslc_version: str = OSLC_CORE_VERSION) -> None:
        url = resource.get_uri()
        headers = {
            "Accept": RDF_XML_UTF8,
            "OSLC-Core-Version": oslc_version,
            CSRF_HEADER: self._session_id(url) or CSRF_DEFAULT,
        }
        response = await self.transport.delete(url, headers=headers)
        if not response.is_success:
            raise self._http_error(response, "DELETE", url, f"failed to delete resource {url}")

    def _session_id(self, url: str) -> Optional[str]:
        """The JSESSIONID cookie value for the host of `url`, if any."""
        host = httpx.URL(url).host
        for cookie in self.transport.cookies.jar:
            if cookie.name != SESSION_COOKIE:
                continue
            domain = cookie.domain.lstrip(".")
            # cookiejar stores dotless hosts as "<host>.local"
            if domain in (host, f"{host}.local") or host.endswith("." + domain):
                return cookie.value
        return None

    # --- Querying ---------------------------------------------------------- #

    async def query_resources(
        self,
        resource_type: Union[str, URIRef],
        query: Optional[QueryParams] = None,
    ) -> List[OSLCResource]:
        """
        Run a query and return one resource per `rdfs:member`, each backed by
        a graph holding only that member's own statements.
        """
        graph = await self.query(resource_type, query)
        resources = []
        for member in graph.objects(None, rdfs.member):
            member_graph = Graph()
            for triple in graph.triples((member, None, None)):
                member_graph.add(triple)
            resources.append(OSLCResource.for_subject(member, member_graph))
        return resources

    async def query(self, resource_type: Union[str, URIRef], query: Optional[QueryParams] = None) -> Graph:
        provider = self._require_provider()
        query_base = provider.get_query_base(resource_type)
        if not query_base:
            raise CapabilityError(f"No query capability found for {resource_type}", resource_type=str(resource_type))
        return await self.query_with_base(query_base, query)

    async def query_with_base(self, query_base: str, query: Optional[QueryParams] = None) -> Graph:
        """
        Query `query_base`, following `oslc:nextPage` links until the last
        page. All pages are parsed into the one returned graph.
        """
        headers = {
            "OSLC-Core-Version": OSLC_CORE_VERSION,
            "Accept": RDF_XML,
            CSRF_HEADER: CSRF_DEFAULT,
        }
        graph = Graph()
        page_url: Optional[str] = build_query_url(query_base, query)
        # the first page may describe itself by its query base
        subjects = [page_url, query_base]
        visited = set()

        while page_url:
            visited.add(page_url)
            response = await self.transport.get(page_url, headers=headers)
            if not response.is_success:
                raise self._http_error(response, "GET", page_url, "failed to query resources")
            self._parse_graph(response, page_url, graph=graph)

            next_page = self._next_page(graph, subjects)
            if next_page in visited:
                self.log.warning("Query page %s links back to a page already read", page_url)
                next_page = None
            page_url = next_page
            subjects = [page_url]

        log_event("oslc.query", logger=self.log, level=logging.DEBUG, url=query_base, pages=len(visited))
        return graph

    @staticmethod
    def _next_page(graph: Graph, subjects: Sequence[Optional[str]]) -> Optional[str]:
        for subject in subjects:
            if not subject:
                continue
            next_page = graph.value(URIRef(subject), oslc.nextPage)
            if next_page is not None:
                return str(next_page)
        return None

    async def get_owner(self, url: str) -> str:
        """Name (`foaf:name`) of the user or group at `url`, cached by URL."""
        cached = self.owner_cache.get(url)
        if cached is not None:
            return cached

        response = await self.transport.get(url, headers={"Accept": RDF_XML})
        if response.status_code != httpx.codes.OK:
            return UNKNOWN_OWNER
        content_location = response.headers.get("Content-Location")
        subject = str(httpx.URL(url).join(content_location)) if content_location else url
        graph = self._parse_graph(response, url)
        name = graph.value(URIRef(subject), foaf.name)
        if name is None:
            return UNKNOWN_OWNER
        self.owner_cache.set(url, str(name))
        return str(name)

    def get_query_base(self, resource_type: Union[str, URIRef]) -> str:
        """Query base for `resource_type` (a full type URI) using SPARQL over
        the service provider graph."""
        provider = self._require_provider()
        rows = list(provider.graph.query(QUERY_BASE_SPARQL, initBindings={"resourceType": URIRef(resource_type)}))
        if not rows:
            raise CapabilityError(f"No query capability found for {resource_type}", resource_type=str(resource_type))
        return str(rows[0][0])

    def get_creation_factory(self, resource_type: Union[str, URIRef]) -> str:
        """Creation URL whose `oslc:usage` is `resource_type`, using SPARQL
        over the service provider graph."""
        provider = self._require_provider()
        rows = list(provider.graph.query(CREATION_FACTORY_SPARQL, initBindings={"usage": URIRef(resource_type)}))
        if not rows:
            raise CapabilityError(f"No creation factory found for {resource_type}", resource_type=str(resource_type))
        return str(rows[0][0])

    # --- Helpers ----------------------------------------------------------- #

    def _parse_graph(
        self,
        response: httpx.Response,
        url: str,
        graph: Optional[Graph] = None,
        content_type: Optional[str] = None,
    ) -> Graph:
        graph = graph if graph is not None else Graph()
        content_type = content_type or response.headers.get("Content-Type")
        try:
            graph.parse(data=response.text, format=rdf_format(content_type), publicID=url)
        except Exception as exc:
            self.log.error("Unable to parse %s response from %s: %s", content_type, url, exc)
            raise OSLCParseError(
                f"Unable to parse {content_type} response from {url}: {exc}",
                url=url,
                content_type=content_type or "",
            ) from exc
        return graph

    @staticmethod
    def _http_error(response: httpx.Response, method: str, url: str, message: str) -> OSLCHTTPError:
        return OSLCHTTPError(
            status_code=response.status_code,
            method=method,
            url=url,
            message=message,
            response_text=body_snippet(response.text),
        )


__all__ = [
    "AtomFeed",
    "OSLCClient",
    "ReadResult",
    "XmlDocument",
    "UNKNOWN_OWNER",
]
