from __future__ import annotations

from typing import Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

# media type -> rdflib parser name
RDF_FORMATS = {
    "application/rdf+xml": "xml",
    "application/x-oslc-compact+xml": "xml",
    "application/xml": "xml",
    "text/xml": "xml",
    "text/turtle": "turtle",
    "application/x-turtle": "turtle",
    "text/n3": "n3",
    "application/n-triples": "nt",
    "application/ld+json": "json-ld",
    "application/json": "json-ld",
}
DEFAULT_RDF_FORMAT = "xml"


def media_type(content_type: Optional[str]) -> str:
    """Strip parameters from a Content-Type header value.

    ```pycon
    >>> media_type('application/rdf+xml; charset=UTF-8')
    'application/rdf+xml'
    ```
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def rdf_format(content_type: Optional[str]) -> str:
    """rdflib parser name for a response Content-Type. RDF/XML is assumed
    when the type is missing or unknown."""
    return RDF_FORMATS.get(media_type(content_type), DEFAULT_RDF_FORMAT)


class QueryParams(BaseModel):
    """
    OSLC query filter. Values use the OSLC query syntax and are forwarded
    verbatim; the client does not parse or validate them.
    """

    prefix: Optional[str] = None
    select: Optional[str] = None
    where: Optional[str] = None
    order_by: Optional[str] = Field(default=None, alias="orderBy")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.prefix:
            params["oslc.prefix"] = self.prefix
        if self.select:
            params["oslc.select"] = self.select
        if self.where:
            params["oslc.where"] = self.where
        if self.order_by:
            params["oslc.orderBy"] = self.order_by
        # the client follows oslc:nextPage itself
        params["oslc.paging"] = "false"
        return params


def build_query_url(query_base: str, query: Optional[QueryParams] = None) -> str:
    """Add the encoded filter parameters to `query_base`, keeping any
    parameters the query base already carries."""
    query = query or QueryParams()
    return str(httpx.URL(query_base).copy_merge_params(query.to_params()))


__all__ = [
    "QueryParams",
    "RDF_FORMATS",
    "build_query_url",
    "media_type",
    "rdf_format",
]
