import httpx
import pytest
from conftest import (
    CATALOG_URL,
    FACTORY_URL,
    PROVIDER_URL,
    QUERY_BASE,
    ROOTSERVICES_URL,
    SERVER,
    TURTLE,
    fixture_text,
    rdf_response,
)
from httpx import Response

from oslc_client import OSLCClient, OSLCResource
from oslc_client.client import UNKNOWN_OWNER, AtomFeed, XmlDocument
from oslc_client.compact import Compact
from oslc_client.discovery import ServiceProvider
from oslc_client.errors import (
    CapabilityError,
    DiscoveryError,
    DomainNotAvailableError,
    OSLCClientError,
    OSLCHTTPError,
    OSLCParseError,
    ProviderNotFoundError,
    TransportError,
)
from oslc_client.namespaces import dcterms, oslc_cm

WORKITEM = f"{SERVER}/resource/itemName/com.ibm.team.workitem.WorkItem/1001"


def _client(**kwargs):
    return OSLCClient(username="alice", password="secret", **kwargs)


def test_username_is_required():
    with pytest.raises(ValueError):
        OSLCClient(username="", password="secret")


# --- Discovery --------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_use_discovers_service_provider(jazz_server):
    async with _client() as client:
        provider = await client.use(SERVER, "Team X", "CM")

        assert isinstance(provider, ServiceProvider)
        assert provider.get_uri() == PROVIDER_URL
        assert client.rootservices.get_uri() == ROOTSERVICES_URL
        assert client.catalog.get_uri() == CATALOG_URL
        assert client.service_provider.get_query_base("ChangeRequest") == QUERY_BASE

    for route in jazz_server.values():
        assert route.call_count == 1


@pytest.mark.asyncio
async def test_use_strips_trailing_slash(jazz_server):
    async with _client() as client:
        await client.use(SERVER + "/", "Team X")
        assert client.base_url == SERVER

    assert jazz_server["rootservices"].called


@pytest.mark.asyncio
async def test_use_missing_domain_raises(jazz_server):
    async with _client() as client:
        with pytest.raises(DomainNotAvailableError) as exc:
            await client.use(SERVER, "Team X", "RM")

    assert exc.value.step == "rootservices"
    assert not jazz_server["catalog"].called


@pytest.mark.asyncio
async def test_use_unknown_domain_raises_value_error():
    async with _client() as client:
        with pytest.raises(ValueError):
            await client.use(SERVER, "Team X", "XX")


@pytest.mark.asyncio
async def test_use_provider_title_is_case_sensitive(jazz_server):
    async with _client() as client:
        with pytest.raises(ProviderNotFoundError) as exc:
            await client.use(SERVER, "team x")

    assert exc.value.url == CATALOG_URL
    assert not jazz_server["provider"].called


@pytest.mark.asyncio
async def test_use_rootservices_failure_raises_discovery_error(router):
    router.get(ROOTSERVICES_URL).mock(return_value=Response(503, text="maintenance"))

    async with _client() as client:
        with pytest.raises(DiscoveryError) as exc:
            await client.use(SERVER, "Team X")

    assert exc.value.step == "rootservices"
    assert isinstance(exc.value.__cause__, OSLCHTTPError)
    assert client.service_provider is None


@pytest.mark.asyncio
async def test_use_non_rdf_document_raises_discovery_error(router):
    router.get(ROOTSERVICES_URL).mock(
        return_value=Response(200, content=b"<html/>", headers={"Content-Type": "text/xml"})
    )

    async with _client() as client:
        with pytest.raises(DiscoveryError):
            await client.use(SERVER, "Team X")


@pytest.mark.asyncio
async def test_operations_before_use_raise_discovery_error():
    async with _client() as client:
        with pytest.raises(DiscoveryError):
            await client.query("ChangeRequest")
        with pytest.raises(DiscoveryError):
            await client.create_resource("ChangeRequest", OSLCResource())
        with pytest.raises(DiscoveryError):
            client.get_query_base(oslc_cm.ChangeRequest)


# --- Reading ----------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_get_resource_returns_rdf_resource_with_etag(router):
    route = router.get(WORKITEM).mock(
        return_value=rdf_response(fixture_text("workitem_1001.ttl"), TURTLE, ETag='"v1"')
    )

    async with _client(configuration_context="https://srv/gc/configuration/7") as client:
        resource = await client.get_resource(WORKITEM)

    assert isinstance(resource, OSLCResource)
    assert resource.identifier == "1001"
    assert resource.title == "Bug 1"
    assert resource.etag == '"v1"'
    request = route.calls[0].request
    assert request.headers["Accept"] == "application/rdf+xml"
    assert request.headers["OSLC-Core-Version"] == "2.0"
    assert request.headers["Configuration-Context"] == "https://srv/gc/configuration/7"


@pytest.mark.asyncio
async def test_get_resource_plain_xml(router):
    router.get(f"{SERVER}/service/info").mock(
        return_value=Response(
            200,
            content=b'<?xml version="1.0"?><info><version>7.0.3</version></info>',
            headers={"Content-Type": "application/xml; charset=UTF-8", "ETag": '"x"'},
        )
    )

    async with _client() as client:
        result = await client.get_resource(f"{SERVER}/service/info")

    assert isinstance(result, XmlDocument)
    assert result.etag == '"x"'
    assert result.xml.tag == "info"
    assert result.xml.findtext("version") == "7.0.3"


@pytest.mark.asyncio
async def test_get_resource_custom_xml_parser(router):
    router.get(f"{SERVER}/service/info").mock(
        return_value=Response(200, content=b"<info/>", headers={"Content-Type": "text/xml"})
    )

    async with _client(xml_parser=lambda data: data.decode()) as client:
        result = await client.get_resource(f"{SERVER}/service/info")

    assert result.xml == "<info/>"


@pytest.mark.asyncio
async def test_get_resource_atom_feed(router):
    feed = '<feed xmlns="http://www.w3.org/2005/Atom"><title>Changes</title></feed>'
    router.get(f"{SERVER}/feed").mock(
        return_value=Response(200, text=feed, headers={"Content-Type": "application/atom+xml"})
    )

    async with _client() as client:
        result = await client.get_resource(f"{SERVER}/feed")

    assert isinstance(result, AtomFeed)
    assert result.feed == feed


@pytest.mark.asyncio
async def test_get_resource_invalid_xml_raises_parse_error(router):
    router.get(f"{SERVER}/service/info").mock(
        return_value=Response(200, content=b"<info>", headers={"Content-Type": "text/xml"})
    )

    async with _client() as client:
        with pytest.raises(OSLCParseError):
            await client.get_resource(f"{SERVER}/service/info")


@pytest.mark.asyncio
async def test_get_resource_invalid_rdf_raises_parse_error(router):
    router.get(WORKITEM).mock(return_value=rdf_response("<not turtle", TURTLE))

    async with _client() as client:
        with pytest.raises(OSLCParseError) as exc:
            await client.get_resource(WORKITEM)

    assert exc.value.url == WORKITEM
    assert exc.value.content_type == TURTLE


@pytest.mark.asyncio
async def test_get_resource_not_found_raises_http_error(router):
    router.get(WORKITEM).mock(return_value=Response(404, text="Not found"))

    async with _client() as client:
        with pytest.raises(OSLCHTTPError) as exc:
            await client.get_resource(WORKITEM)

    assert exc.value.status_code == 404
    assert exc.value.method == "GET"
    assert "Not found" in str(exc.value)


@pytest.mark.asyncio
async def test_get_resource_network_error_raises_transport_error(router):
    router.get(WORKITEM).mock(side_effect=httpx.ConnectError)

    async with _client() as client:
        with pytest.raises(TransportError) as exc:
            await client.get_resource(WORKITEM)

    assert not isinstance(exc.value, OSLCHTTPError)
    assert exc.value.url == WORKITEM


@pytest.mark.asyncio
async def test_get_compact_resource(router):
    route = router.get(WORKITEM).mock(
        return_value=rdf_response(fixture_text("compact.rdf"), "application/x-oslc-compact+xml")
    )

    async with _client() as client:
        compact = await client.get_compact_resource(WORKITEM)

    assert isinstance(compact, Compact)
    assert compact.title == "Bug 1"
    assert compact.short_title == "Defect 1001"
    assert compact.icon.endswith("/types/bug.gif")
    assert compact.icon_title == "Defect"
    assert compact.icon_src_set is None
    assert compact.large_preview is None
    preview = compact.small_preview
    assert preview.hint_width == "45em"
    assert preview.hint_height == "10em"
    assert "_selector=preview" in preview.document
    assert route.calls[0].request.headers["Accept"] == "application/x-oslc-compact+xml"


# --- Writing ----------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_create_resource_reads_back_created_item(router, jazz_server):
    location = WORKITEM
    factory = router.post(FACTORY_URL).mock(return_value=Response(201, headers={"Location": location}))
    router.get(WORKITEM).mock(
        return_value=rdf_response(fixture_text("workitem_1001.ttl"), TURTLE, ETag='"v1"')
    )

    resource = OSLCResource()
    resource.title = "Bug 1"
    resource.set(dcterms.type, "Defect")

    async with _client() as client:
        await client.use(SERVER, "Team X")
        created = await client.create_resource(oslc_cm.ChangeRequest, resource)

    assert created.identifier == "1001"
    assert created.get_uri() == WORKITEM
    assert created.etag == '"v1"'
    request = factory.calls[0].request
    assert request.headers["Content-Type"] == "application/rdf+xml; charset=utf-8"
    assert b"Bug 1" in request.content


@pytest.mark.asyncio
async def test_create_resource_relative_location(router, jazz_server):
    router.post(FACTORY_URL).mock(
        return_value=Response(201, headers={"Location": "/ccm/resource/itemName/com.ibm.team.workitem.WorkItem/1001"})
    )
    read = router.get(WORKITEM).mock(
        return_value=rdf_response(fixture_text("workitem_1001.ttl"), TURTLE)
    )

    async with _client() as client:
        await client.use(SERVER, "Team X")
        await client.create_resource("ChangeRequest", OSLCResource())

    assert read.called


@pytest.mark.asyncio
async def test_create_resource_without_location_raises(router, jazz_server):
    router.post(FACTORY_URL).mock(return_value=Response(201))

    async with _client() as client:
        await client.use(SERVER, "Team X")
        with pytest.raises(OSLCClientError):
            await client.create_resource("ChangeRequest", OSLCResource())


@pytest.mark.asyncio
async def test_create_resource_rejected_raises_http_error(router, jazz_server):
    router.post(FACTORY_URL).mock(return_value=Response(400, text="missing filedAgainst"))

    async with _client() as client:
        await client.use(SERVER, "Team X")
        with pytest.raises(OSLCHTTPError) as exc:
            await client.create_resource("ChangeRequest", OSLCResource())

    assert exc.value.status_code == 400
    assert exc.value.method == "POST"


@pytest.mark.asyncio
async def test_create_resource_unknown_type_raises_capability_error(jazz_server):
    async with _client() as client:
        await client.use(SERVER, "Team X")
        with pytest.raises(CapabilityError):
            await client.create_resource("Requirement", OSLCResource())


@pytest.mark.asyncio
async def test_put_resource_with_stale_etag_raises_412(router):
    def conditional_put(request):
        if request.headers.get("If-Match") != '"v2"':
            return Response(412, text="Precondition Failed")
        return Response(200, headers={"ETag": '"v3"'})

    route = router.put(WORKITEM).mock(side_effect=conditional_put)
    resource = OSLCResource(WORKITEM)
    resource.title = "Bug 1 (edited)"

    async with _client() as client:
        with pytest.raises(OSLCHTTPError) as exc:
            await client.put_resource(resource, etag='"v1"')

    assert exc.value.status_code == 412
    assert exc.value.method == "PUT"
    assert route.calls[0].request.headers["If-Match"] == '"v1"'


@pytest.mark.asyncio
async def test_put_resource_updates_etag(router):
    router.put(WORKITEM).mock(return_value=Response(200, headers={"ETag": '"v3"'}))
    resource = OSLCResource(WORKITEM, etag='"v2"')

    async with _client() as client:
        updated = await client.put_resource(resource, etag=resource.etag)

    assert updated is resource
    assert resource.etag == '"v3"'


@pytest.mark.asyncio
async def test_put_resource_without_etag_sends_no_precondition(router):
    route = router.put(WORKITEM).mock(return_value=Response(200))

    async with _client() as client:
        await client.put_resource(OSLCResource(WORKITEM))

    assert "If-Match" not in route.calls[0].request.headers


@pytest.mark.asyncio
async def test_delete_resource_sends_session_id_as_csrf_token(router):
    url = "https://jazz.example.com/ccm/resource/itemName/com.ibm.team.workitem.WorkItem/7"
    route = router.delete(url).mock(return_value=Response(204))
    cookies = httpx.Cookies()
    cookies.set("JSESSIONID", "sess-1", domain="jazz.example.com")

    async with _client(cookies=cookies) as client:
        await client.delete_resource(OSLCResource(url))

    assert route.calls[0].request.headers["X-Jazz-CSRF-Prevent"] == "sess-1"


@pytest.mark.asyncio
async def test_delete_resource_without_session_uses_default_token(router):
    route = router.delete(WORKITEM).mock(return_value=Response(200))

    async with _client() as client:
        await client.delete_resource(OSLCResource(WORKITEM))

    assert route.calls[0].request.headers["X-Jazz-CSRF-Prevent"] == "1"


@pytest.mark.asyncio
async def test_delete_resource_failure_raises(router):
    router.delete(WORKITEM).mock(return_value=Response(403, text="forbidden"))

    async with _client() as client:
        with pytest.raises(OSLCHTTPError) as exc:
            await client.delete_resource(OSLCResource(WORKITEM))

    assert exc.value.status_code == 403


# --- Owners and SPARQL lookups ----------------------------------------------- #

OWNER_TTL = """
@prefix foaf: <http://xmlns.com/foaf/0.1/> .
<https://srv/jts/users/alice> foaf:name "Alice Example" .
"""


@pytest.mark.asyncio
async def test_get_owner_is_cached(router):
    route = router.get("https://srv/jts/users/alice").mock(return_value=rdf_response(OWNER_TTL, TURTLE))

    async with _client() as client:
        assert await client.get_owner("https://srv/jts/users/alice") == "Alice Example"
        assert await client.get_owner("https://srv/jts/users/alice") == "Alice Example"
        assert "https://srv/jts/users/alice" in client.owner_cache

    assert route.call_count == 1


@pytest.mark.asyncio
async def test_get_owner_uses_content_location(router):
    router.get("https://srv/jts/whoami").mock(
        return_value=rdf_response(OWNER_TTL, TURTLE, **{"Content-Location": "/jts/users/alice"})
    )

    async with _client() as client:
        assert await client.get_owner("https://srv/jts/whoami") == "Alice Example"


@pytest.mark.asyncio
async def test_get_owner_unknown_is_not_cached(router):
    route = router.get("https://srv/jts/users/ghost").mock(return_value=Response(404))

    async with _client() as client:
        assert await client.get_owner("https://srv/jts/users/ghost") == UNKNOWN_OWNER
        assert await client.get_owner("https://srv/jts/users/ghost") == UNKNOWN_OWNER

    assert route.call_count == 2


@pytest.mark.asyncio
async def test_get_owner_without_name_is_unknown(router):
    router.get("https://srv/jts/users/bob").mock(return_value=rdf_response(OWNER_TTL, TURTLE))

    async with _client() as client:
        assert await client.get_owner("https://srv/jts/users/bob") == UNKNOWN_OWNER


@pytest.mark.asyncio
async def test_sparql_lookups(jazz_server):
    async with _client() as client:
        await client.use(SERVER, "Team X")

        assert client.get_query_base(oslc_cm.ChangeRequest) == QUERY_BASE
        assert client.get_creation_factory(oslc_cm.defect) == FACTORY_URL
        with pytest.raises(CapabilityError):
            client.get_query_base("http://open-services.net/ns/rm#Requirement")
        with pytest.raises(CapabilityError):
            client.get_creation_factory(oslc_cm.task)


@pytest.mark.asyncio
async def test_put_resource_accepts_no_content(router):
    router.put(WORKITEM).mock(return_value=Response(204))
    resource = OSLCResource(WORKITEM, etag='"v2"')

    async with _client() as client:
        updated = await client.put_resource(resource, etag='"v2"')

    assert updated is resource
    assert resource.etag == '"v2"'


@pytest.mark.asyncio
async def test_delete_resource_accepts_any_success_status(router):
    router.delete(WORKITEM).mock(return_value=Response(202))

    async with _client() as client:
        await client.delete_resource(OSLCResource(WORKITEM))
