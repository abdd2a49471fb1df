import pytest
from fastapi.testclient import TestClient

from flightlog.api.api_main import create_app
from flightlog.context import build_context

import logbuilder as lb

START = 1_700_000_000_000


@pytest.fixture
def client(settings, resolver_with_key, key_service):
    ctx = build_context(settings, key_resolver=resolver_with_key, transport=key_service.transport)
    with TestClient(create_app(context=ctx)) as c:
        yield c


def test_import_list_detail_stats_delete(client, tmp_path):
    path = tmp_path / "FLY001.DAT"
    path.write_bytes(lb.build_log(lb.simple_flight(START, samples=4)))

    imported = client.post("/flights/import", json={"file_path": str(path)}).json()
    assert imported["success"] is True
    assert imported["pointCount"] == 4
    fid = imported["flightId"]

    flights = client.get("/flights").json()
    assert [f["id"] for f in flights] == [fid]
    assert flights[0]["droneModel"] == "Mavic 3"

    data = client.get(f"/flights/{fid}", params={"maxPoints": 2}).json()
    assert data["telemetry"]["time"] == [0.0, 0.3]
    assert data["track"][0] == [8.5456, 47.3977, 10.0]

    stats = client.get(f"/flights/{fid}/stats").json()
    assert stats["durationSecs"] == pytest.approx(0.3)
    assert stats["minBattery"] == 92
    assert stats["homeLocation"] == [8.5456, 47.3977]

    assert client.delete(f"/flights/{fid}").status_code == 200
    assert client.get(f"/flights/{fid}").status_code == 404
    assert client.delete(f"/flights/{fid}").status_code == 404


def test_duplicate_import_reports_failure(client, tmp_path):
    path = tmp_path / "FLY002.DAT"
    path.write_bytes(lb.build_log(lb.simple_flight(START)))

    client.post("/flights/import", json={"file_path": str(path)})
    again = client.post("/flights/import", json={"file_path": str(path)}).json()

    assert again["success"] is False
    assert again["flightId"] is None


def test_api_key_settings(client, settings):
    assert client.get("/settings/api-key").json() == {"configured": True}

    saved = client.put("/settings/api-key", json={"api_key": "new-key"}).json()

    assert saved["saved"] is True
    assert (settings.app_data_dir / "config.json").exists()


def test_detail_is_capped_by_configured_chart_points(client, settings, tmp_path):
    path = tmp_path / "FLY003.DAT"
    path.write_bytes(lb.build_log(lb.simple_flight(START, samples=10)))
    fid = client.post("/flights/import", json={"file_path": str(path)}).json()["flightId"]

    settings.max_chart_points = 3
    capped = client.get(f"/flights/{fid}").json()
    full = client.get(f"/flights/{fid}", params={"maxPoints": 0}).json()

    assert len(capped["telemetry"]["time"]) == 3
    assert capped["telemetry"]["time"][0] == 0.0
    assert capped["telemetry"]["time"][-1] == pytest.approx(0.9)
    assert len(full["telemetry"]["time"]) == 10
