from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from editor.session import EditorSession
from main import app, get_client, get_session

DRAWN = {
    "action": "record_drawn",
    "payload": {
        "id": 0.42,
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
        },
    },
}


@pytest.fixture
def api(service):
    session = EditorSession()
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_client] = service.client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _command(api, action: str, payload: dict) -> dict:
    resp = api.post("/commands", json={"action": action, "payload": payload})
    assert resp.status_code == 200
    return resp.json()


def test_state_starts_empty(api):
    resp = api.get("/state")
    assert resp.status_code == 200
    data = resp.json()
    assert data["features"] == []
    assert data["selectedLayers"] is None
    assert data["status"] == "idle"


def test_load_layer_then_select_shows_its_features(api, service):
    service.add_polygon(5, 2, title="orchard")
    service.add_polygon(6, 3)

    resp = api.post("/layers/2/load")
    assert resp.status_code == 200
    assert resp.json()["loadedLayers"] == [2]
    assert resp.json()["features"] == []

    data = _command(api, "set_editable_layers", {"layer_ids": [2]})
    [f] = data["features"]
    assert f["id"] == "5"
    assert f["persisted"] is True
    assert f["properties"]["title"] == "orchard"
    assert f["geometry"]["type"] == "Polygon"

    # Loading an already loaded layer does not hit the service again.
    api.post("/layers/2/load")
    assert len(service.calls_to("GET", "/pgs_by_layer/")) == 1


def test_draw_describe_and_save(api, service):
    _command(api, "set_editable_layers", {"layer_ids": [3]})
    data = api.post("/commands", json=DRAWN).json()
    assert data["newFeatureModalOpen"] is True
    assert data["features"][0]["persisted"] is False

    data = _command(
        api,
        "update_feature",
        {"id": "0.42", "title": "Pond", "description": "east", "layer_id": 3},
    )
    assert data["newFeatureModalOpen"] is False
    assert data["selectedFeature"]["id"] == "0.42"

    resp = api.post("/save")
    assert resp.status_code == 200
    body = resp.json()
    assert body["saved"] is True
    assert body["created"] == 1
    assert body["errors"] == []
    assert body["state"]["status"] == "saved"
    [(_, path, sent)] = service.calls
    assert path == "/polygon/create"
    assert sent["title"] == "Pond"


def test_failed_save_reports_errors(api, service):
    service.add_polygon(4, 3)
    service.failures[("POST", "/polygon/update")] = 500
    api.post("/layers/3/load")
    _command(api, "set_editable_layers", {"layer_ids": [3]})

    body = api.post("/save").json()

    assert body["saved"] is False
    assert body["errors"][0]["status"] == 500
    assert body["state"]["status"] == "error"
    assert body["state"]["error"]["status"] == 500


def test_layer_click_shows_tooltip_on_selected_feature(api, service):
    service.add_polygon(5, 2)
    api.post("/layers/2/load")
    _command(api, "set_editable_layers", {"layer_ids": [2]})
    _command(api, "select_feature", {"id": 5})

    data = _command(api, "layer_click", {"lng_lat": [1.0, 1.0], "position": [120, 80]})
    assert data["selectedFeature"]["tooltip"] == {"visible": True, "position": [120, 80]}

    data = _command(api, "layer_click", {"lng_lat": [9.0, 9.0], "position": [5, 5]})
    assert data["selectedFeature"]["tooltip"] is None


def test_unknown_command_is_rejected(api):
    resp = api.post("/commands", json={"action": "drop_all", "payload": {}})
    assert resp.status_code == 422


def test_layer_metadata_load(api, service):
    service.layers = [{"id": 1, "title": "Parcels", "editable": True}]
    data = api.post("/layers/metadata/load").json()
    assert data["layers"] == [{"id": 1, "title": "Parcels", "editable": True}]


def test_read_only_dataset(api, service):
    service.read_only = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "id": "ro-1",
                "properties": {"prop1": "x", "prop2": "y"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]],
                },
            }
        ],
    }
    resp = api.get("/read-only")
    assert resp.status_code == 200
    data = resp.json()
    assert data["info"]["id"] == "custom-read-only"
    assert [f["id"] for f in data["data"]["features"]] == ["ro-1"]
    assert data["config"]["tooltipFields"] == ["prop1", "prop2"]
    # Never merged into the editable features.
    assert api.get("/state").json()["loadedFeatureCount"] == 0


def test_read_only_dataset_unavailable(api, service):
    service.failures[("GET", "/public/ro.json")] = 404
    resp = api.get("/read-only")
    assert resp.status_code == 502
