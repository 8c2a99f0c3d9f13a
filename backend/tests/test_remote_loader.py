from __future__ import annotations

import asyncio

from editor.commands import SetEditableLayers
from editor.session import EditorSession
from layers.types import Persisted
from remote.loader import RemoteLoader


def _loader(service) -> RemoteLoader:
    return RemoteLoader(EditorSession(), service.client())


def test_fetch_layer_twice_hits_network_once(service):
    service.add_polygon(1, 2)
    service.add_polygon(2, 5)
    loader = _loader(service)

    async def run():
        await loader.fetch_features_for_layer(2)
        await loader.fetch_features_for_layer(2)

    asyncio.run(run())

    assert len(service.calls_to("GET", "/pgs_by_layer/")) == 1
    state = loader.session.state
    assert state.loaded_layers == (2,)
    assert [f.id for f in state.loaded_features] == ["1"]


def test_concurrent_fetches_of_same_layer_share_one_call(service):
    service.add_polygon(1, 2)
    loader = _loader(service)

    async def run():
        await asyncio.gather(
            loader.fetch_features_for_layer(2),
            loader.fetch_features_for_layer(2),
        )

    asyncio.run(run())
    assert len(service.calls_to("GET", "/pgs_by_layer/")) == 1
    assert loader.session.state.loaded_layers == (2,)


def test_layer_fetch_tags_features_and_shows_them_once_selected(service):
    service.add_polygon(11, 3, title="meadow")
    loader = _loader(service)
    loader.session.dispatch(SetEditableLayers.model_validate({"payload": {"layer_ids": [3]}}))

    state = asyncio.run(loader.fetch_features_for_layer(3))

    assert state.status == "idle"
    [f] = state.features
    assert f.id == "11"
    assert isinstance(f.key, Persisted)
    assert f.layer_id == 3
    assert f.properties.title == "meadow"
    assert f.rings[0][0] == (0.0, 0.0)


def test_fetch_all_parses_records_and_skips_bad_geometry(service):
    service.add_polygon(1, 2)
    service.add_polygon(2, 2, geom="LINESTRING (0 0, 1 1)")
    service.add_polygon(3, 4)
    loader = _loader(service)

    state = asyncio.run(loader.fetch_all_features())

    assert [f.id for f in state.loaded_features] == ["1", "3"]
    assert [f.layer_id for f in state.loaded_features] == [2, 4]
    # A general fetch does not mark any layer as loaded.
    assert state.loaded_layers == ()

    again = asyncio.run(loader.fetch_all_features())
    assert [f.id for f in again.loaded_features] == ["1", "3"]


def test_layer_metadata_replaces_catalog(service):
    service.layers = [
        {"id": 1, "title": "Parcels", "editable": True},
        {"id": 2, "title": "Boundaries", "editable": False},
    ]
    loader = _loader(service)

    state = asyncio.run(loader.fetch_layer_metadata())
    assert [(layer.id, layer.editable) for layer in state.layers] == [(1, True), (2, False)]
    assert [layer.id for layer in state.editable_layers()] == [1]

    service.layers = [{"id": 7, "title": "Only", "editable": True}]
    state = asyncio.run(loader.fetch_layer_metadata())
    assert [layer.id for layer in state.layers] == [7]


def test_fetch_failure_is_recorded_not_raised(service):
    service.failures[("GET", "/pgs_by_layer/")] = 503
    loader = _loader(service)

    state = asyncio.run(loader.fetch_features_for_layer(2))

    assert state.status == "error"
    assert state.error.status == 503
    # A failed fetch does not count as loaded; the next call retries.
    assert state.loaded_layers == ()
    service.failures.clear()
    state = asyncio.run(loader.fetch_features_for_layer(2))
    assert state.loaded_layers == (2,)
    assert len(service.calls_to("GET", "/pgs_by_layer/")) == 2


def test_read_only_dataset_never_enters_the_store(service):
    service.read_only = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"prop1": "a"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]],
                },
            },
            {
                "type": "Feature",
                "id": "m",
                "properties": {},
                "geometry": {
                    "type": "MultiPolygon",
                    "coordinates": [
                        [[[0, 0], [1, 0], [1, 1], [0, 0]]],
                        [[[5, 5], [6, 5], [6, 6], [5, 5]]],
                    ],
                },
            },
        ],
    }
    loader = _loader(service)

    dataset = asyncio.run(loader.fetch_read_only_dataset())

    assert dataset is not None
    assert dataset.id == "custom-read-only"
    assert [f.id for f in dataset.features] == ["poly-0", "m-0", "m-1"]
    assert "style" in dataset.config
    assert loader.session.state.loaded_features == ()
