"""Tests for the PostgREST-style HTTP clients.

Uses httpx.MockTransport so no network is touched; each test scripts the
responses for the requests it expects.
"""

import json

import httpx
import pytest

from dealflow.core.exceptions import (
    AlreadyExistsError,
    NotAuthorizedError,
    NotFoundError,
    RemoteUnavailableError,
)
from dealflow.remote.http import HttpRelationshipService, HttpSubscriptionStore

pytestmark = pytest.mark.unit

BASE_URL = "https://backend.test/rest/v1"

ROW = {
    "id": "conn-1",
    "status": "pending",
    "sender_id": "investor-a",
    "receiver_id": "startup-b",
    "deal_closed": None,
    "deal_closed_at": None,
    "created_at": "2030-06-15T10:30:00+00:00",
}


class ScriptedBackend:
    """Replays scripted responses in order and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_service(backend: ScriptedBackend) -> HttpRelationshipService:
    return HttpRelationshipService(
        base_url=BASE_URL,
        api_key="service-key",
        transport=httpx.MockTransport(backend),
        table="connections",
    )


async def test_get_connection_maps_row_and_sends_pair_filter():
    backend = ScriptedBackend(httpx.Response(200, json=[ROW]))

    record = await make_service(backend).get_connection("investor-a", "startup-b")

    assert record.id == "conn-1"
    assert record.initiator_id == "investor-a"
    assert record.recipient_id == "startup-b"
    assert record.deal_closed is False
    request = backend.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/connections"
    assert 'sender_id.eq."investor-a"' in request.url.params["or"]
    assert 'sender_id.eq."startup-b"' in request.url.params["or"]
    assert request.headers["apikey"] == "service-key"
    assert request.headers["authorization"] == "Bearer service-key"


async def test_get_connection_none_when_empty():
    backend = ScriptedBackend(httpx.Response(200, json=[]))
    assert await make_service(backend).get_connection("a", "b") is None


async def test_pair_filter_quotes_reserved_characters():
    backend = ScriptedBackend(httpx.Response(200, json=[]))

    await make_service(backend).get_connection("acme,inc)", 'say "hi"')

    assert backend.requests[0].url.params["or"] == (
        '(and(sender_id.eq."acme,inc)",receiver_id.eq."say \\"hi\\""),'
        'and(sender_id.eq."say \\"hi\\"",receiver_id.eq."acme,inc)"))'
    )


async def test_unreadable_body_maps_to_remote_unavailable():
    backend = ScriptedBackend(httpx.Response(200, content=b"<html>gateway</html>"))

    with pytest.raises(RemoteUnavailableError):
        await make_service(backend).get_connection("investor-a", "startup-b")


async def test_incomplete_row_maps_to_remote_unavailable():
    row = {key: value for key, value in ROW.items() if key != "sender_id"}
    backend = ScriptedBackend(httpx.Response(200, json=[row]))

    with pytest.raises(RemoteUnavailableError):
        await make_service(backend).get_connection("investor-a", "startup-b")


async def test_create_without_returned_id_maps_to_remote_unavailable():
    backend = ScriptedBackend(httpx.Response(200, json=[]), httpx.Response(201, json=[{"status": "pending"}]))

    with pytest.raises(RemoteUnavailableError):
        await make_service(backend).create_connection("investor-a", "startup-b")


async def test_create_connection_inserts_pending():
    backend = ScriptedBackend(
        httpx.Response(200, json=[]),
        httpx.Response(201, json=[{**ROW, "id": "conn-9"}]),
    )

    connection_id = await make_service(backend).create_connection("investor-a", "startup-b")

    assert connection_id == "conn-9"
    insert = backend.requests[1]
    assert insert.method == "POST"
    assert json.loads(insert.content) == {
        "sender_id": "investor-a",
        "receiver_id": "startup-b",
        "status": "pending",
    }


async def test_create_connection_rejects_active_pair_without_insert():
    backend = ScriptedBackend(httpx.Response(200, json=[{**ROW, "status": "accepted"}]))

    with pytest.raises(AlreadyExistsError):
        await make_service(backend).create_connection("startup-b", "investor-a")

    assert len(backend.requests) == 1


async def test_create_connection_clears_rejected_row_first():
    backend = ScriptedBackend(
        httpx.Response(200, json=[{**ROW, "status": "rejected"}]),
        httpx.Response(200, json=[ROW]),
        httpx.Response(201, json=[{**ROW, "id": "conn-2"}]),
    )

    assert await make_service(backend).create_connection("investor-a", "startup-b") == "conn-2"
    assert [request.method for request in backend.requests] == ["GET", "DELETE", "POST"]
    assert backend.requests[1].url.params["id"] == "eq.conn-1"


async def test_conflict_on_insert_maps_to_already_exists():
    backend = ScriptedBackend(
        httpx.Response(200, json=[]),
        httpx.Response(409, json={"message": "duplicate key value violates unique constraint"}),
    )

    with pytest.raises(AlreadyExistsError):
        await make_service(backend).create_connection("investor-a", "startup-b")


async def test_update_status_no_rows_not_found():
    backend = ScriptedBackend(httpx.Response(200, json=[]))

    with pytest.raises(NotFoundError):
        await make_service(backend).update_connection_status("conn-1", "accepted")


async def test_mark_deal_closed_filters_on_accepted():
    backend = ScriptedBackend(httpx.Response(200, json=[{**ROW, "status": "accepted", "deal_closed": True}]))

    await make_service(backend).mark_deal_closed("conn-1")

    request = backend.requests[0]
    assert request.method == "PATCH"
    assert request.url.params["status"] == "eq.accepted"
    assert json.loads(request.content)["deal_closed"] is True


async def test_delete_missing_not_found():
    backend = ScriptedBackend(httpx.Response(200, json=[]))

    with pytest.raises(NotFoundError):
        await make_service(backend).delete_connection("conn-1")


async def test_list_connections():
    backend = ScriptedBackend(httpx.Response(200, json=[ROW, {**ROW, "id": "conn-2", "sender_id": "investor-c"}]))

    records = await make_service(backend).list_connections("startup-b")

    assert [record.id for record in records] == ["conn-1", "conn-2"]
    assert backend.requests[0].url.params["or"] == '(sender_id.eq."startup-b",receiver_id.eq."startup-b")'


async def test_forbidden_maps_to_not_authorized():
    backend = ScriptedBackend(httpx.Response(403, json={"message": "permission denied"}))

    with pytest.raises(NotAuthorizedError):
        await make_service(backend).delete_connection("conn-1")


async def test_server_error_is_retryable():
    backend = ScriptedBackend(httpx.Response(503, text="upstream unavailable"))

    with pytest.raises(RemoteUnavailableError) as exc_info:
        await make_service(backend).get_connection("a", "b")

    assert exc_info.value.retryable is True


async def test_transport_error_maps_to_remote_unavailable():
    backend = ScriptedBackend(httpx.ConnectError("connection refused"))

    with pytest.raises(RemoteUnavailableError):
        await make_service(backend).get_connection("a", "b")


async def test_unconfigured_client_fails_without_request():
    service = HttpRelationshipService(base_url="", api_key="", transport=httpx.MockTransport(ScriptedBackend()))
    service.base_url = ""

    with pytest.raises(RemoteUnavailableError):
        await service.get_connection("a", "b")


async def test_subscription_store_reads_user_setting():
    backend = ScriptedBackend(httpx.Response(200, json=[{"value": "investor_pro"}]))
    store = HttpSubscriptionStore(base_url=BASE_URL, api_key="k", transport=httpx.MockTransport(backend))

    assert await store.get_tier("investor-a") == "investor_pro"
    assert backend.requests[0].url.params["key"] == "eq.subscription_tier"


async def test_subscription_store_upserts():
    backend = ScriptedBackend(httpx.Response(201, json=[{"value": "growth"}]))
    store = HttpSubscriptionStore(base_url=BASE_URL, api_key="k", transport=httpx.MockTransport(backend))

    await store.set_tier("startup-b", "growth")

    request = backend.requests[0]
    assert request.url.params["on_conflict"] == "user_id,key"
    assert "merge-duplicates" in request.headers["prefer"]
