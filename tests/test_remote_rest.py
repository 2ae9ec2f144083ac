import json

import httpx
import pytest

from burnops.auth.provider import AuthSessionInvalid, AuthUnavailable, GoTrueAuthProvider
from burnops.remote.provider import RemoteAuthError, RemoteStoreError
from burnops.remote.rest_provider import RestRemoteStore
from burnops.schemas.burns import OperationRecord


pytestmark = pytest.mark.anyio


def _store(handler):
    return RestRemoteStore(
        base_url="https://db.test",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


async def test_insert_posts_row_and_ignores_duplicates():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(201)

    row = OperationRecord.new(name="Sa Serra").to_remote_row("user-1")
    await _store(handler).insert(row, "tok-1")

    req = seen["request"]
    assert req.method == "POST"
    assert req.url.path == "/rest/v1/burns"
    assert req.url.params["on_conflict"] == "id"
    assert "ignore-duplicates" in req.headers["Prefer"]
    assert req.headers["Authorization"] == "Bearer tok-1"
    assert req.headers["apikey"] == "anon-key"
    body = json.loads(req.content)
    assert body[0]["id"] == row["id"]
    assert body[0]["user_id"] == "user-1"


async def test_select_filters_by_owner():
    seen = {}

    def handler(request):
        seen["params"] = request.url.params
        return httpx.Response(200, json=[{"id": "a"}])

    rows = await _store(handler).select_for_owner("user-1", "tok-1")
    assert rows == [{"id": "a"}]
    assert seen["params"]["user_id"] == "eq.user-1"
    assert seen["params"]["order"] == "created_at.desc"


@pytest.mark.parametrize("status,exc", [(401, RemoteAuthError), (403, RemoteAuthError), (409, RemoteStoreError), (500, RemoteStoreError)])
async def test_error_statuses(status, exc):
    with pytest.raises(exc) as info:
        await _store(lambda r: httpx.Response(status, text="nope")).insert({"id": "x"}, "tok")
    assert info.value.status_code == status


async def test_transport_failure_is_store_error():
    def handler(request):
        raise httpx.ConnectError("no route to host", request=request)

    with pytest.raises(RemoteStoreError):
        await _store(handler).delete("x", "tok")


async def test_select_rejects_non_list():
    with pytest.raises(RemoteStoreError):
        await _store(lambda r: httpx.Response(200, json={"rows": []})).select_for_owner("u", "t")


def _auth(handler):
    return GoTrueAuthProvider(base_url="https://db.test", api_key="anon-key", transport=httpx.MockTransport(handler))


async def test_gotrue_get_user_and_sign_in():
    def handler(request):
        if request.url.path == "/auth/v1/user":
            return httpx.Response(200, json={"id": "user-1", "email": "op@x.it"})
        if request.url.path == "/auth/v1/token":
            assert request.url.params["grant_type"] == "password"
            return httpx.Response(200, json={"access_token": "tok", "user": {"id": "user-1"}})
        return httpx.Response(404)

    provider = _auth(handler)
    assert (await provider.get_user("tok"))["id"] == "user-1"
    assert (await provider.sign_in("op@x.it", "pw"))["access_token"] == "tok"


async def test_gotrue_rejection_vs_outage():
    with pytest.raises(AuthSessionInvalid):
        await _auth(lambda r: httpx.Response(401)).get_user("tok")
    with pytest.raises(AuthUnavailable):
        await _auth(lambda r: httpx.Response(502)).get_user("tok")

    def down(request):
        raise httpx.ConnectTimeout("timeout", request=request)

    with pytest.raises(AuthUnavailable):
        await _auth(down).get_user("tok")
