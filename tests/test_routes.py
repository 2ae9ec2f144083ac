import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from burnops.db import make_engine
from burnops.main import create_app
from burnops.services.container import build_services


D = 0.0089932
SQUARE = [[0.0, 0.0], [0.0, D], [D, D], [D, 0.0]]


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as c:
        yield c


@pytest.fixture
def logged_in(client):
    resp = client.post("/auth/login", json={"email": "op1@forestas.example", "password": "secret"})
    assert resp.status_code == 200
    return client


def test_health_and_request_id(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"] == "req-42"


def test_auth_flow(client):
    assert client.get("/auth/me").json() == {"authenticated": False, "id": None, "email": None}
    assert client.post("/auth/login", json={"email": "op1@forestas.example", "password": "bad"}).status_code == 401
    assert client.post("/auth/login", json={"email": "op1@forestas.example", "password": "secret"}).json()["id"] == "user-1"
    assert client.get("/auth/me").json()["authenticated"] is True
    client.post("/auth/logout")
    assert client.get("/auth/me").json()["authenticated"] is False


def test_create_burn_online_goes_remote(logged_in, remote):
    resp = logged_in.post("/burns", json={"name": "Sa Serra", "weather": {"temp": "21"}, "fuel_model": "Pineta"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["destination"] == "remote"
    assert body["synced"] is True
    assert body["states"] == ["idle", "attempting_remote", "done"]
    assert remote.rows[body["id"]]["weather_data"]["temp"] == 21.0


def test_create_burn_anonymous_goes_local(client):
    body = client.post("/burns", json={}).json()
    assert body["destination"] == "local"
    assert body["reason"] == "anonymous"

    burn = client.get(f"/burns/{body['id']}").json()
    assert burn["name"] == "Operazione Senza Nome"
    assert burn["synced"] is False


def test_invalid_fuel_model_rejected(client):
    assert client.post("/burns", json={"fuel_model": "Asfalto"}).status_code == 422
    assert client.patch("/workspace", json={"temp": "31", "fuel_model": "Asfalto"}).status_code == 422
    assert client.get("/workspace").json()["form"]["temp"] is None


def test_offline_save_then_reconnect_syncs(logged_in, remote):
    logged_in.post("/connectivity", json={"online": False})
    saved = logged_in.post("/burns", json={"name": "field"}).json()
    assert saved["reason"] == "offline"

    resp = logged_in.post("/connectivity", json={"online": True}).json()
    assert resp == {"online": True, "changed": True}
    assert saved["id"] in remote.rows

    registry = logged_in.get("/burns").json()
    assert registry["remote_available"] is True
    assert [b["synced"] for b in registry["burns"]] == [True]


def test_manual_sync_reports_abort(client):
    client.post("/connectivity", json={"online": False})
    client.post("/burns", json={"name": "x"})
    assert client.post("/burns/sync").json()["aborted"] == "offline"


def test_delete_local_and_missing(client):
    saved = client.post("/burns", json={}).json()
    assert client.delete(f"/burns/{saved['id']}").status_code == 200
    assert client.delete(f"/burns/{saved['id']}").status_code == 404
    assert client.get(f"/burns/{saved['id']}").status_code == 404


def test_delete_synced_requires_login(client):
    assert client.delete("/burns/some-id", params={"synced": "true"}).status_code == 401


def test_local_store_failure_is_507(tmp_path, remote, auth_provider):
    engine = make_engine(f"sqlite:///{tmp_path / 'no-tables.db'}")
    broken = build_services(session_factory=sessionmaker(bind=engine, future=True), remote=remote, auth_provider=auth_provider)
    with TestClient(create_app(broken)) as c:
        resp = c.post("/burns", json={})
    assert resp.status_code == 507
    assert "NON" in resp.json()["detail"]


def test_personnel_crud(client):
    created = client.post("/personnel", json={"name": "  Anna Sanna ", "role": "Torcista"})
    assert created.status_code == 201
    person = created.json()
    assert person["name"] == "Anna Sanna"
    assert client.get("/personnel").json() == [person]
    assert "Supervisore" in client.get("/personnel/roles").json()
    assert client.post("/personnel", json={"name": "   "}).status_code == 422
    assert client.delete(f"/personnel/{person['id']}").status_code == 200
    assert client.delete(f"/personnel/{person['id']}").status_code == 404


def test_geometry_stats(client):
    body = client.post("/geometry/stats", json={"vertices": SQUARE}).json()
    assert body["area_ha"] == pytest.approx(100.2, abs=1.0)
    assert body["geojson"]["type"] == "Polygon"
    from_geojson = client.post("/geometry/stats", json={"geojson": body["geojson"]}).json()
    assert from_geojson["area_ha"] == body["area_ha"]


def test_analyze_without_key_is_simulated(client):
    body = client.post("/analyze", json={"weather": {"temp": 33}, "fuel_model": "Bosco"}).json()
    assert body["error"] is None
    assert "**Alto**" in body["result"]
    assert client.post("/chat", json={"messages": [{"role": "user", "content": "ciao"}]}).status_code == 503


def test_lookups(client):
    assert client.get("/lookups/weather", params={"lat": 40.1, "lon": 9.0}).json()["form"]["temp"] == 24.3
    assert client.get("/lookups/geocode", params={"q": "Nuoro"}).json()["lat"] == 40.1209
    assert client.get("/lookups/geocode", params={"q": "nowhere"}).status_code == 404
    assert client.get("/lookups/weather", params={"lat": 100, "lon": 9.0}).status_code == 422


def test_checklists(client):
    body = client.get("/checklists").json()
    assert [i["id"] for i in body["laces"]] == ["L", "A", "C", "E", "S"]
    assert len(body["phases"]) == 3


def test_workspace_end_to_end(client):
    person = client.post("/personnel", json={"name": "Gavino Mele"}).json()

    client.patch("/workspace", json={"name": "Lollove", "temp": "24", "wind": "12"})
    area = client.put("/workspace/area", json={"vertices": SQUARE}).json()
    assert area["area_ha"] > 99
    team = client.put("/workspace/team", json={"selected_ids": [person["id"]], "hours_log": {person["id"]: "5"}}).json()
    assert team["total"] == 5.0

    analysis = client.post("/workspace/analyze").json()
    assert "Medio" in analysis["result"]
    assert client.patch("/workspace", json={"temp": "35"}).status_code == 409
    assert client.patch("/workspace", json={"bogus": 1}).status_code == 422

    pdf = client.get("/workspace/report.pdf")
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    saved = client.post("/workspace/save").json()
    assert saved["destination"] == "local"
    burn = client.get(f"/burns/{saved['id']}").json()
    assert burn["name"] == "Lollove"
    assert burn["personnel_hours"]["participants"][0]["name"] == "Gavino Mele"
    assert burn["area_geojson"]["type"] == "Polygon"
    assert client.get("/workspace").json()["form"]["name"] == ""

    report = client.get(f"/burns/{saved['id']}/report.pdf")
    assert report.status_code == 200
    assert "report-lollove-" in report.headers["content-disposition"]


def test_workspace_position(client):
    snap = client.post("/workspace/position", json={"lat": 40.1209, "lon": 9.0129}).json()
    assert snap["form"]["location"] == "40.1209, 9.0129"
    assert snap["form"]["temp"] == 24.3
    snap = client.post("/workspace/position", json={"error": "denied"}).json()
    assert snap["notice"] == "Impossibile rilevare la posizione."
