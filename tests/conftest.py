from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

from burnops.auth.provider import AuthProvider, AuthSessionInvalid, AuthUnavailable
from burnops.db import Base, make_engine
from burnops.models import models  # noqa: F401
from burnops.remote.provider import RemoteStore, RemoteStoreError
from burnops.services.analysis import AnalysisClient
from burnops.services.container import build_services
from burnops.services.lookups import LookupClient


USER = {"id": "user-1", "email": "op1@forestas.example"}
OTHER_USER = {"id": "user-2", "email": "op2@forestas.example"}


class InMemoryRemoteStore(RemoteStore):
    """Remote table keyed by id; duplicate inserts are ignored like the real one."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.insert_calls: List[str] = []
        self.fail_ids = set()
        self.fail_all: Optional[Exception] = None
        self.select_error: Optional[Exception] = None

    async def insert(self, row, access_token):
        self.insert_calls.append(row["id"])
        if self.fail_all is not None:
            raise self.fail_all
        if row["id"] in self.fail_ids:
            raise RemoteStoreError("boom", status_code=500)
        self.rows.setdefault(row["id"], dict(row))

    async def select_for_owner(self, owner_id, access_token):
        if self.select_error is not None:
            raise self.select_error
        rows = [dict(r) for r in self.rows.values() if r["user_id"] == owner_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    async def delete(self, burn_id, access_token):
        if self.fail_all is not None:
            raise self.fail_all
        self.rows.pop(burn_id, None)


class FakeAuthProvider(AuthProvider):
    def __init__(self):
        self.tokens: Dict[str, Dict[str, Any]] = {"tok-1": USER, "tok-2": OTHER_USER}
        self.passwords = {USER["email"]: ("secret", "tok-1")}
        self.unavailable = False
        self.get_user_calls = 0
        self.signed_out: List[str] = []

    async def get_user(self, access_token):
        self.get_user_calls += 1
        if self.unavailable:
            raise AuthUnavailable("network down")
        if access_token not in self.tokens:
            raise AuthSessionInvalid("invalid JWT")
        return dict(self.tokens[access_token])

    async def sign_in(self, email, password):
        if self.unavailable:
            raise AuthUnavailable("network down")
        expected = self.passwords.get(email)
        if expected is None or expected[0] != password:
            raise AuthSessionInvalid("invalid login credentials")
        token = expected[1]
        return {"access_token": token, "token_type": "bearer", "user": dict(self.tokens[token])}

    async def sign_out(self, access_token):
        if self.unavailable:
            raise AuthUnavailable("network down")
        self.signed_out.append(access_token)


def _lookup_handler(request: httpx.Request) -> httpx.Response:
    if "forecast" in request.url.path:
        return httpx.Response(200, json={
            "current_units": {"temperature_2m": "°C", "relative_humidity_2m": "%", "wind_speed_10m": "km/h"},
            "current": {
                "temperature_2m": 24.3,
                "relative_humidity_2m": 41,
                "wind_speed_10m": 12.5,
                "wind_direction_10m": 280,
            },
        })
    if request.url.params.get("q") == "nowhere":
        return httpx.Response(200, json=[])
    return httpx.Response(200, json=[{"lat": "40.1209", "lon": "9.0129", "display_name": "Nuoro, Sardegna, Italia"}])


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'burnops-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture
def remote():
    return InMemoryRemoteStore()


@pytest.fixture
def auth_provider():
    return FakeAuthProvider()


@pytest.fixture
def lookup_transport():
    return httpx.MockTransport(_lookup_handler)


@pytest.fixture
def services(session_factory, remote, auth_provider, lookup_transport):
    return build_services(
        session_factory=session_factory,
        remote=remote,
        auth_provider=auth_provider,
        analysis=AnalysisClient(api_key=""),
        lookups=LookupClient(transport=lookup_transport),
        online=True,
    )


@pytest.fixture
def signed_in(services):
    services.session.adopt_token("tok-1")
    return services
