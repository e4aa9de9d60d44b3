from pathlib import Path

import pytest
import respx
from httpx import Response

FIXTURES = Path(__file__).parent / "fixtures"

SERVER = "https://srv/ccm"
ROOTSERVICES_URL = f"{SERVER}/rootservices"
CATALOG_URL = f"{SERVER}/oslc/workitems/catalog"
PROVIDER_URL = f"{SERVER}/oslc/contexts/_teamx/workitems/services.xml"
QUERY_BASE = f"{SERVER}/oslc/contexts/_teamx/workitems"
FACTORY_URL = f"{SERVER}/oslc/contexts/_teamx/workitems/defect"

RDF_XML = "application/rdf+xml"
TURTLE = "text/turtle"


def fixture_text(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def rdf_response(body: str, content_type: str = RDF_XML, status: int = 200, **headers) -> Response:
    return Response(
        status,
        content=body.encode("utf-8"),
        headers={"Content-Type": content_type, **headers},
    )


@pytest.fixture
def router():
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def jazz_server(router):
    """Routes for the rootservices -> catalog -> provider discovery chain."""
    return {
        "rootservices": router.get(ROOTSERVICES_URL).mock(
            return_value=rdf_response(fixture_text("rootservices.rdf"))
        ),
        "catalog": router.get(CATALOG_URL).mock(
            return_value=rdf_response(fixture_text("catalog.rdf"))
        ),
        "provider": router.get(PROVIDER_URL).mock(
            return_value=rdf_response(fixture_text("provider.ttl"), TURTLE)
        ),
    }
