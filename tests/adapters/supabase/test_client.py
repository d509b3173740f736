from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from scanledger.adapters.supabase import SupabaseImpactStore
from scanledger.config import RemoteStoreConfig
from scanledger.domain.ports import ImpactPayload, RemoteStoreError

from tests.support.http import make_client_factory


def _payload() -> ImpactPayload:
    return ImpactPayload(
        user_id="user-1",
        item_key="steel can|steel|recycling",
        day_key="2025-03-14",
        item="Steel Can",
        material="steel",
        recyclable=True,
        bin="Recycling",
        notes="",
        scanned_at="2025-03-14T12:00:00.000Z",
        points=0,
        scan_count=1,
        image_path=None,
        source="photo",
    )


def test_fetch_queries_the_users_rows(
    remote_config: RemoteStoreConfig, sample_row: dict[str, object]
) -> None:
    requests: list[httpx.Request] = []

    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[sample_row])

    store = SupabaseImpactStore(remote_config, make_client_factory(handler, requests))
    records = asyncio.run(store.fetch(limit=25))

    assert [record.item for record in records] == ["Steel Can"]
    (request,) = requests
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/impact_entries"
    assert request.url.params["user_id"] == "eq.user-1"
    assert request.url.params["order"] == "scanned_at.desc"
    assert request.url.params["limit"] == "25"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer user-token"


def test_fetch_skips_unreadable_rows(
    remote_config: RemoteStoreConfig, sample_row: dict[str, object]
) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"points": "lots"}, sample_row, "garbage"])

    store = SupabaseImpactStore(remote_config, make_client_factory(handler))

    assert len(asyncio.run(store.fetch(limit=10))) == 1


@pytest.mark.parametrize(
    ("response", "status_code"),
    [
        (httpx.Response(500, text="boom"), 500),
        (httpx.Response(200, json={"message": "not a list"}), 200),
        (httpx.Response(200, text="<html>"), 200),
    ],
)
def test_fetch_failures_raise_remote_store_error(
    remote_config: RemoteStoreConfig, response: httpx.Response, status_code: int
) -> None:
    store = SupabaseImpactStore(remote_config, make_client_factory(lambda _: response))

    with pytest.raises(RemoteStoreError) as excinfo:
        asyncio.run(store.fetch(limit=10))

    assert excinfo.value.status_code == status_code


def test_transport_errors_raise_remote_store_error(remote_config: RemoteStoreConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    store = SupabaseImpactStore(remote_config, make_client_factory(handler))

    with pytest.raises(RemoteStoreError, match="offline"):
        asyncio.run(store.fetch(limit=10))


def test_insert_upserts_on_conflict_key(remote_config: RemoteStoreConfig) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json=[json.loads(request.content)])

    store = SupabaseImpactStore(remote_config, make_client_factory(handler, requests))

    assert asyncio.run(store.insert(_payload())) is True
    (request,) = requests
    assert request.method == "POST"
    assert request.url.params["on_conflict"] == "user_id,item_key,day_key"
    assert "resolution=merge-duplicates" in request.headers["Prefer"]
    assert json.loads(request.content)["item_key"] == "steel can|steel|recycling"


@pytest.mark.parametrize(
    "response",
    [httpx.Response(409, text="conflict"), httpx.Response(406), httpx.Response(200, text="[]")],
)
def test_insert_reports_declined_writes(
    remote_config: RemoteStoreConfig, response: httpx.Response
) -> None:
    store = SupabaseImpactStore(remote_config, make_client_factory(lambda _: response))

    assert asyncio.run(store.insert(_payload())) is False


def test_insert_server_error_raises(remote_config: RemoteStoreConfig) -> None:
    store = SupabaseImpactStore(
        remote_config, make_client_factory(lambda _: httpx.Response(503, text="busy"))
    )

    with pytest.raises(RemoteStoreError) as excinfo:
        asyncio.run(store.insert(_payload()))

    assert excinfo.value.status_code == 503


def test_upload_image_posts_jpeg_bytes(remote_config: RemoteStoreConfig) -> None:
    requests: list[httpx.Request] = []
    store = SupabaseImpactStore(
        remote_config,
        make_client_factory(lambda _: httpx.Response(200, json={"Key": "x"}), requests),
    )

    asyncio.run(store.upload_image(data=b"jpeg", path="user-1/2025-03-14/a b.jpg"))

    (request,) = requests
    assert request.url.raw_path == b"/storage/v1/object/impact-images/user-1/2025-03-14/a%20b.jpg"
    assert request.headers["Content-Type"] == "image/jpeg"
    assert request.headers["x-upsert"] == "true"
    assert request.content == b"jpeg"


def test_upload_image_failure_raises(remote_config: RemoteStoreConfig) -> None:
    store = SupabaseImpactStore(
        remote_config, make_client_factory(lambda _: httpx.Response(413, text="too large"))
    )

    with pytest.raises(RemoteStoreError, match="413"):
        asyncio.run(store.upload_image(data=b"jpeg", path="user-1/a.jpg"))
