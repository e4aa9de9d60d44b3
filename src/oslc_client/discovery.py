from __future__ import annotations

from typing import Iterator, Optional, Union

from lxml import etree
from rdflib import Literal, URIRef
from rdflib.term import Node

from .namespaces import dcterms, oslc, oslc_cm1, oslc_qm1, oslc_rm1, rdf
from .resource import OSLCResource

# rootservices predicate naming the service provider catalog of each domain
SERVICE_PROVIDERS = {
    "CM": oslc_cm1.cmServiceProviders,
    "RM": oslc_rm1.rmServiceProviders,
    "QM": oslc_qm1.qmServiceProviders,
}


def catalog_predicate(domain: str) -> URIRef:
    try:
        return SERVICE_PROVIDERS[domain]
    except KeyError:
        raise ValueError(
            f"Unknown OSLC domain {domain!r}; expected one of {', '.join(SERVICE_PROVIDERS)}"
        ) from None


def literal_text(node: Node) -> str:
    """Text of a title node. `rdf:XMLLiteral` values (Jazz catalogs use
    `rdf:parseType="Literal"`) are unescaped to their character content."""
    if isinstance(node, Literal) and node.datatype == rdf.XMLLiteral:
        try:
            fragment = etree.fromstring(f"<t>{node}</t>")
        except etree.XMLSyntaxError:
            return str(node)
        return "".join(fragment.itertext())
    return str(node)


class RootServices(OSLCResource):
    """A Jazz rootservices document."""

    def service_provider_catalog(self, service_providers: URIRef) -> Optional[str]:
        """
        Returns the catalog URI given by the `service_providers` predicate
        (e.g. `oslc_cm1:cmServiceProviders`), or `None` if the server does
        not offer that domain.
        """
        catalog = self.graph.value(self.uri, service_providers)
        return str(catalog) if catalog is not None else None


class ServiceProviderCatalog(OSLCResource):
    def service_provider(self, title: str) -> Optional[str]:
        """
        Returns the URI of the service provider whose `dcterms:title` is
        exactly `title`. The comparison is case-sensitive and does not trim
        whitespace. Providers listed by the catalog win over any other
        subject carrying the same title.
        """
        matches = [
            s for s, o in self.graph.subject_objects(dcterms.title)
            if literal_text(o) == title
        ]
        if not matches:
            return None
        listed = set(self.graph.objects(self.uri, oslc.serviceProvider))
        for subject in matches:
            if subject in listed:
                return str(subject)
        return str(matches[0])


def matches_type(candidate: Node, resource_type: Union[str, URIRef]) -> bool:
    """A `URIRef` must match exactly; a plain string may also name the end of
    the type URI, e.g. `"ChangeRequest"`."""
    if isinstance(resource_type, URIRef):
        return candidate == resource_type
    value = str(candidate)
    return value == resource_type or value.endswith(resource_type)


class ServiceProvider(OSLCResource):
    """
    An OSLC service provider. Its services list query capabilities and
    creation factories keyed by `oslc:resourceType`; the first match across
    the (unordered) services wins.
    """

    def _capabilities(self, kind: URIRef) -> Iterator[Node]:
        for service in self.graph.objects(self.uri, oslc.service):
            yield from self.graph.objects(service, kind)

    def _lookup(self, kind: URIRef, endpoint: URIRef, resource_type: Union[str, URIRef]) -> Optional[str]:
        for capability in self._capabilities(kind):
            if any(matches_type(t, resource_type) for t in self.graph.objects(capability, oslc.resourceType)):
                value = self.graph.value(capability, endpoint)
                return str(value) if value is not None else None
        return None

    def get_query_base(self, resource_type: Union[str, URIRef]) -> Optional[str]:
        """The `oslc:queryBase` of the query capability for `resource_type`."""
        return self._lookup(oslc.queryCapability, oslc.queryBase, resource_type)

    def get_creation_factory(self, resource_type: Union[str, URIRef]) -> Optional[str]:
        """The `oslc:creation` URL of the creation factory for `resource_type`."""
        return self._lookup(oslc.creationFactory, oslc.creation, resource_type)


__all__ = [
    "SERVICE_PROVIDERS",
    "RootServices",
    "ServiceProviderCatalog",
    "ServiceProvider",
    "catalog_predicate",
    "literal_text",
    "matches_type",
]
