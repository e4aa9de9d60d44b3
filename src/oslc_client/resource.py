from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Union
from urllib.parse import urlsplit

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.term import Node

from .namespaces import dcterms, oslc

PropertyValue = Union[str, List[str], None]


def is_iterable(value: Any) -> bool:
    """Returns `True` if `value` is iterable, but not a string. Strings (and
    rdflib terms, which are strings) are treated as single values."""
    try:
        iter(value)
    except TypeError:
        return False
    else:
        return not isinstance(value, str)


def canonical_uri(uri: str) -> URIRef:
    """Address a resource by its origin and path only, dropping any query
    string or fragment it was fetched with.

    ```pycon
    >>> canonical_uri('https://srv/ccm/oslc/query?oslc.where=x')
    rdflib.term.URIRef('https://srv/ccm/oslc/query')
    ```
    """
    parts = urlsplit(str(uri))
    return URIRef(f"{parts.scheme}://{parts.netloc}{parts.path}")


def as_predicate(property: Union[str, URIRef]) -> URIRef:
    return property if isinstance(property, URIRef) else URIRef(property)


def as_node(value: Any) -> Node:
    if isinstance(value, (URIRef, BNode, Literal)):
        return value
    return Literal(value)


class OSLCResource:
    """
    Generic OSLC resource: one subject in an `rdflib.Graph` that may be shared
    with other resources read from the same response.

    Properties are read and written by predicate URI. Following the
    open-world assumption, a missing property is simply `None`.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        graph: Optional[Graph] = None,
        etag: Optional[str] = None,
    ):
        if uri:
            self.query_uri: Optional[str] = str(uri)
            self._uri: Union[URIRef, BNode] = canonical_uri(uri)
        else:
            # new local resource; the server assigns the real URI on creation
            self.query_uri = None
            self._uri = BNode()
        self.graph: Graph = graph if graph is not None else Graph()
        self.etag: Optional[str] = etag

    @classmethod
    def for_subject(
        cls,
        subject: Union[URIRef, BNode],
        graph: Graph,
        etag: Optional[str] = None,
    ) -> "OSLCResource":
        """Wrap a node already present in `graph`, keeping it as the subject
        exactly as written (query string included)."""
        resource = cls(graph=graph, etag=etag)
        resource.query_uri = str(subject)
        resource._uri = subject
        return resource

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._uri}>"

    @property
    def uri(self) -> Union[URIRef, BNode]:
        """The subject of this resource in its graph."""
        return self._uri

    def get_uri(self) -> str:
        return str(self._uri)

    def get(self, property: Union[str, URIRef]) -> PropertyValue:
        """
        Get a property value. Returns `None` if the property is absent, its
        string value if there is exactly one, or a list of string values if
        it is multi-valued.
        """
        values = [str(o) for o in self.graph.objects(self._uri, as_predicate(property))]
        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return values

    def set(self, property: Union[str, URIRef], value: Any) -> None:
        """
        Replace all values of a property. `None` removes the property; a list
        sets every value in it. To add one value to a multi-valued property,
        read the current values and set the full list.
        """
        predicate = as_predicate(property)
        self.graph.remove((self._uri, predicate, None))
        if value is None:
            return
        if is_iterable(value):
            for v in value:
                self.graph.add((self._uri, predicate, as_node(v)))
        else:
            self.graph.add((self._uri, predicate, as_node(value)))

    def _first(self, property: URIRef) -> Optional[str]:
        result = self.get(property)
        return result[0] if isinstance(result, list) else result

    @property
    def title(self) -> Optional[str]:
        return self._first(dcterms.title)

    @title.setter
    def title(self, value: Optional[str]) -> None:
        self.set(dcterms.title, value)

    @property
    def description(self) -> Optional[str]:
        return self._first(dcterms.description)

    @description.setter
    def description(self, value: Optional[str]) -> None:
        self.set(dcterms.description, value)

    @property
    def identifier(self) -> Optional[str]:
        return self._first(dcterms.identifier)

    @identifier.setter
    def identifier(self, value: Optional[str]) -> None:
        self.set(dcterms.identifier, value)

    @property
    def short_title(self) -> Optional[str]:
        return self._first(oslc.shortTitle)

    @short_title.setter
    def short_title(self, value: Optional[str]) -> None:
        self.set(oslc.shortTitle, value)

    def get_link_types(self) -> Set[str]:
        """Predicates of this resource whose values are links (URI references)."""
        return {
            str(p)
            for p, o in self.graph.predicate_objects(self._uri)
            if isinstance(o, URIRef)
        }

    def get_properties(self) -> Dict[str, PropertyValue]:
        """All properties of this resource as predicate URI -> value(s)."""
        result: Dict[str, Any] = {}
        for p, o in self.graph.predicate_objects(self._uri):
            key = str(p)
            value = str(o)
            if key not in result:
                result[key] = value
            elif isinstance(result[key], list):
                result[key].append(value)
            else:
                result[key] = [result[key], value]
        return result

    def serialize(self, format: str = "xml") -> str:
        return self.graph.serialize(format=format)


__all__ = ["OSLCResource", "PropertyValue", "canonical_uri", "is_iterable"]
