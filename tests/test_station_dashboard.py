import pytest

from station_dashboard import create_app


@pytest.fixture
def client(station_config, plex):
    app = create_app(station_config, plex)
    app.config["TESTING"] = True
    return app.test_client()


def test_list_stations(client):
    resp = client.get("/api/stations")

    assert resp.status_code == 200
    names = [s["name"] for s in resp.get_json()["stations"]]
    assert names == ["edgefold", "pack"]


def test_mount_unknown_station(client):
    assert client.post("/api/stations/nope/session").status_code == 404


def test_scan_requires_mounted_station(client):
    resp = client.post("/api/stations/edgefold/scan", json={"serial_no": "W1"})
    assert resp.status_code == 404


def test_mount_and_scan_edgefold(client, plex):
    plex.add_container("W1", operation="Waterjet")

    state = client.post("/api/stations/edgefold/session").get_json()
    assert state["workcenter"]["status"] == "Loaded"

    resp = client.post("/api/stations/edgefold/scan", json={"serial_no": "W1"})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["accepted"] is True
    assert body["message"] == "Production recorded for W1 ✔️"
    assert body["state"]["background"] == "#00CC66"


def test_scan_without_serial_is_bad_request(client):
    client.post("/api/stations/edgefold/session")
    assert client.post("/api/stations/edgefold/scan", json={}).status_code == 400


def test_pack_flow_over_http(client, plex):
    plex.add_container("A", operation="Assembly")
    plex.add_container("B", operation="Assembly")
    client.post("/api/stations/pack/session")

    client.post("/api/stations/pack/scan", json={"serial_no": "A"})
    client.post("/api/stations/pack/scan", json={"serial_no": "B"})
    resp = client.post("/api/stations/pack/pack")
    body = resp.get_json()

    assert body["success"] is True
    assert body["result"]["members"] == ["A", "B"]
    assert body["state"]["pack_list"]["members"] == []


def test_unmount_refused_with_open_pack_list(client, plex):
    plex.add_container("A", operation="Assembly")
    client.post("/api/stations/pack/session")
    client.post("/api/stations/pack/scan", json={"serial_no": "A"})

    assert client.delete("/api/stations/pack/session").status_code == 409
    assert client.delete("/api/stations/pack/session?force=1").status_code == 200
    assert client.get("/api/stations/pack/state").status_code == 404


def test_unload_only_on_pack_station(client):
    client.post("/api/stations/edgefold/session")
    resp = client.post("/api/stations/edgefold/unload", json={"serial_no": "A"})
    assert resp.status_code == 400


def test_refresh_reports_failure(client, plex):
    client.post("/api/stations/edgefold/session")
    plex.fail["get_workcenter_info"] = "Plex is down"

    body = client.post("/api/stations/edgefold/refresh").get_json()

    assert body["success"] is False
    assert body["state"]["workcenter"]["status"] == "Error"
    assert body["state"]["workcenter"]["part_number"] == "PN-100"


def test_status_endpoint(client):
    client.post("/api/stations/pack/session")
    body = client.get("/api/status").get_json()

    assert body["plex_server"] == "test"
    assert body["stations"] == {"edgefold": None, "pack": "Ready"}
