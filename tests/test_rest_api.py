import json

import httpx
import pytest

from adapters.rest_api import build_rest_client, decoders, routes
from core.domain.models import Limit, QueryResult
from core.errors import (
    AuthenticationRequired,
    DeserializationFailure,
    RefreshFailure,
    RequestConstructionFailure,
    ResponseFailure,
)


class Recorder:
    """Handler de `httpx.MockTransport` que responde en orden y guarda las peticiones."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


# --- routes -----------------------------------------------------------------


def test_limits_route(credentials):
    request = routes.limits(credentials, version="38.0")

    assert request.method == "GET"
    assert request.url == "https://na1.example.com/services/data/v38.0/limits/"
    assert request.headers["Authorization"] == "Bearer old-token"
    assert request.headers["Accept"] == "application/json"
    assert request.body is None


def test_query_route_encodes_soql(credentials):
    request = routes.query("SELECT Id FROM Account WHERE Name = 'A&B'", credentials, version="38.0")

    assert request.url == (
        "https://na1.example.com/services/data/v38.0/query/"
        "?q=SELECT+Id+FROM+Account+WHERE+Name+%3D+%27A%26B%27"
    )


def test_query_next_is_a_passthrough(credentials):
    request = routes.query_next("/services/data/v38.0/query/01gD0000002HU6KIAW-2000", credentials)

    assert request.url == "https://na1.example.com/services/data/v38.0/query/01gD0000002HU6KIAW-2000"


def test_retrieve_route_with_fields(credentials):
    request = routes.retrieve("Account", "001xx0000003DGQAA2", credentials, version="38.0", fields=["Id", "Name"])

    assert request.url == (
        "https://na1.example.com/services/data/v38.0/sobjects/Account/001xx0000003DGQAA2?fields=Id%2CName"
    )


def test_insert_and_update_send_json(credentials):
    insert = routes.insert("Account", {"Name": "Acme"}, credentials, version="38.0")
    update = routes.update("Account", "001", {"Name": "Acme 2"}, credentials, version="38.0")

    assert insert.method == "POST"
    assert insert.url.endswith("/sobjects/Account/")
    assert json.loads(insert.body) == {"Name": "Acme"}
    assert insert.headers["Content-Type"] == "application/json"
    assert update.method == "PATCH"
    assert update.url.endswith("/sobjects/Account/001")
    assert json.loads(update.body) == {"Name": "Acme 2"}


def test_delete_route(credentials):
    request = routes.delete("Account", "001", credentials, version="38.0")

    assert request.method == "DELETE"
    assert "Content-Type" not in request.headers


def test_apex_rest_get_uses_query_string_and_custom_headers(credentials):
    request = routes.apex_rest(
        credentials,
        path="/Widgets/v1",
        method="get",
        parameters={"color": "red"},
        headers={"X-Trace": "abc"},
    )

    assert request.method == "GET"
    assert request.url == "https://na1.example.com/services/apexrest/Widgets/v1?color=red"
    assert request.headers["X-Trace"] == "abc"
    assert request.body is None


def test_custom_post_uses_json_body(credentials):
    request = routes.custom(credentials, path="/services/async/38.0/job", method="POST", parameters={"a": 1})

    assert request.url == "https://na1.example.com/services/async/38.0/job"
    assert json.loads(request.body) == {"a": 1}


def test_identity_route_uses_identity_url(credentials):
    assert routes.identity(credentials).url == credentials.identity_url


@pytest.mark.parametrize(
    "build",
    [
        lambda c: routes.query("  ", c, version="38.0"),
        lambda c: routes.retrieve("", "001", c, version="38.0"),
        lambda c: routes.delete("Account", "", c, version="38.0"),
        lambda c: routes.query_next("services/data/v38.0/query/x", c),
        lambda c: routes.custom(c, path="/x", method="TRACE"),
        lambda c: routes.insert("Account", {"when": object()}, c, version="38.0"),
        lambda c: routes.insert("Account", ["Name"], c, version="38.0"),
        lambda c: routes.update("Account", "001", "Name=Acme", c, version="38.0"),
        lambda c: routes.retrieve("Account", "001", c, version="38.0", fields="Name"),
        lambda c: routes.retrieve("Account", "001", c, version="38.0", fields=["Id", 3]),
        lambda c: routes.custom(c, path="/x", method="POST", parameters=[("a", 1)]),
        lambda c: routes.apex_rest(c, path="/x", headers=["X-Debug"]),
        lambda c: routes.identity(c.model_copy(update={"identity_url": None})),
    ],
)
def test_invalid_parameters_are_construction_failures(credentials, build):
    with pytest.raises(RequestConstructionFailure):
        build(credentials)


# --- decoders ---------------------------------------------------------------


def test_limits_decoder():
    result = decoders.limits({"DailyApiRequests": {"Max": 15000, "Remaining": 14998}})

    assert result == [Limit(name="DailyApiRequests", maximum=15000, remaining=14998)]


def test_limits_decoder_names_the_broken_entry():
    with pytest.raises(DeserializationFailure) as excinfo:
        decoders.limits({"DailyApiRequests": {"Max": 15000}})

    assert excinfo.value.element_name == "DailyApiRequests"


def test_inserted_id_decoder():
    assert decoders.inserted_id({"id": "001xx0000003DGQAA2", "success": True}) == "001xx0000003DGQAA2"
    with pytest.raises(DeserializationFailure) as excinfo:
        decoders.inserted_id({"success": True})
    assert excinfo.value.element_name == "id"


def test_record_decoder_rejects_non_objects():
    with pytest.raises(DeserializationFailure):
        decoders.record([1, 2, 3])


# --- client end-to-end ------------------------------------------------------


QUERY_PAGE_1 = {
    "totalSize": 3,
    "done": False,
    "nextRecordsUrl": "/services/data/v38.0/query/01gxx-2",
    "records": [{"attributes": {"type": "Account"}, "Id": "1"}, {"Id": "2"}],
}
QUERY_PAGE_2 = {"totalSize": 3, "done": True, "records": [{"Id": "3"}]}


@pytest.mark.asyncio
async def test_query_and_next_page(settings):
    recorder = Recorder(httpx.Response(200, json=QUERY_PAGE_1), httpx.Response(200, json=QUERY_PAGE_2))

    async with build_rest_client(settings, transport=httpx.MockTransport(recorder)) as client:
        first = await client.query("SELECT Id FROM Account")
        second = await client.query_next(first.next_records_path)

    assert isinstance(first, QueryResult)
    assert first.total_size == 3
    assert not first.is_done
    assert [r["Id"] for r in first.records + second.records] == ["1", "2", "3"]
    assert second.next_records_path is None
    assert recorder.requests[1].url.path == "/services/data/v38.0/query/01gxx-2"


@pytest.mark.asyncio
async def test_insert_returns_new_id(settings):
    recorder = Recorder(httpx.Response(201, json={"id": "001xx0000003DGQAA2", "success": True, "errors": []}))

    async with build_rest_client(settings, transport=httpx.MockTransport(recorder)) as client:
        new_id = await client.insert("Account", {"Name": "Acme"})

    assert new_id == "001xx0000003DGQAA2"
    request = recorder.requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"Name": "Acme"}
    assert request.headers["Authorization"] == "Bearer old-token"


@pytest.mark.asyncio
async def test_update_and_delete_accept_no_content(settings):
    recorder = Recorder(httpx.Response(204), httpx.Response(204))

    async with build_rest_client(settings, transport=httpx.MockTransport(recorder)) as client:
        assert await client.update("Account", "001", {"Name": "Acme"}) is None
        assert await client.delete("Account", "001") is None

    assert [r.method for r in recorder.requests] == ["PATCH", "DELETE"]


@pytest.mark.asyncio
async def test_identity_decodes_user_info(settings):
    recorder = Recorder(
        httpx.Response(
            200,
            json={
                "user_id": "005xx000001X8Uz",
                "organization_id": "00Dxx0000001gPL",
                "username": "admin@example.com",
                "display_name": "Admin User",
                "utcOffset": -28800000,
                "is_app_installed": True,
            },
        )
    )

    async with build_rest_client(settings, transport=httpx.MockTransport(recorder)) as client:
        user = await client.identity()

    assert user.username == "admin@example.com"
    assert user.utc_offset == -28800000
    assert str(recorder.requests[0].url) == settings.identity_url


@pytest.mark.asyncio
async def test_identity_missing_required_field_names_it(settings):
    recorder = Recorder(httpx.Response(200, json={"user_id": "005", "organization_id": "00D"}))

    async with build_rest_client(settings, transport=httpx.MockTransport(recorder)) as client:
        with pytest.raises(DeserializationFailure) as excinfo:
            await client.identity()

    assert excinfo.value.element_name == "username"


@pytest.mark.asyncio
async def test_expired_session_refreshes_through_token_endpoint(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/services/oauth2/token":
            return httpx.Response(200, json={"access_token": "new-token", "instance_url": "https://na1.example.com"})
        if request.headers["Authorization"] == "Bearer old-token":
            return httpx.Response(401, json=[{"errorCode": "INVALID_SESSION_ID", "message": "Session expired"}])
        return httpx.Response(200, json={"DailyApiRequests": {"Max": 15000, "Remaining": 14000}})

    async with build_rest_client(settings, transport=httpx.MockTransport(handler)) as client:
        result = await client.limits()
        current = client.pipeline.store.current_credentials()

    assert result[0].remaining == 14000
    assert current.access_token == "new-token"


@pytest.mark.asyncio
async def test_rejected_refresh_is_terminal(settings):
    recorder = Recorder(
        httpx.Response(401),
        httpx.Response(400, json={"error": "invalid_grant", "error_description": "expired access/refresh token"}),
    )

    async with build_rest_client(settings, transport=httpx.MockTransport(recorder)) as client:
        with pytest.raises(RefreshFailure):
            await client.limits()

    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_no_credentials_configured(settings):
    bare = settings.model_copy(update={"access_token": None})
    recorder = Recorder()

    async with build_rest_client(bare, transport=httpx.MockTransport(recorder)) as client:
        with pytest.raises(AuthenticationRequired):
            await client.limits()

    assert recorder.requests == []


@pytest.mark.asyncio
async def test_apex_rest_error_body(settings):
    recorder = Recorder(
        httpx.Response(404, json=[{"errorCode": "NOT_FOUND", "message": "Could not find a match for URL"}])
    )

    async with build_rest_client(settings, transport=httpx.MockTransport(recorder)) as client:
        with pytest.raises(ResponseFailure) as excinfo:
            await client.apex_rest("/Missing")

    assert excinfo.value.code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_version_comes_from_settings(settings):
    recorder = Recorder(httpx.Response(200, json={}))
    custom = settings.model_copy(update={"api_version": "59.0"})

    async with build_rest_client(custom, transport=httpx.MockTransport(recorder)) as client:
        await client.retrieve("Account", "001")

    assert recorder.requests[0].url.path == "/services/data/v59.0/sobjects/Account/001"
