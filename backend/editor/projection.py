from __future__ import annotations

from typing import Any

from editor.types import EditorState
from layers.types import Feature, LayerMeta, PolygonFeature, ReadOnlyDataset


def project_state(state: EditorState) -> dict[str, Any]:
    """
    Read-only JSON view of a snapshot for the map side.
    """
    selected = state.selected_feature
    return {
        "features": [project_feature(f) for f in state.features],
        "selectedFeature": project_feature(selected) if selected is not None else None,
        "loadedLayers": list(state.loaded_layers),
        "selectedLayers": sorted(state.selected_layers)
        if state.selected_layers is not None
        else None,
        "loadedFeatureCount": len(state.loaded_features),
        "deletedIds": list(state.deleted_ids),
        "newFeatureModalOpen": state.new_feature_modal_open,
        "layers": [project_layer(layer) for layer in state.layers],
        "status": state.status,
        "error": {
            "status": state.error.status,
            "message": state.error.message,
            "url": state.error.url,
        }
        if state.error is not None
        else None,
    }


def project_feature(f: Feature) -> dict[str, Any]:
    return {
        "id": f.id,
        "persisted": f.is_persisted,
        "geometry": _geometry(f.rings),
        "properties": {
            "title": f.properties.title,
            "description": f.properties.description,
            "layerId": f.properties.layer_id,
        }
        if f.properties is not None
        else None,
        "layerId": f.layer_id,
        "tooltip": {"visible": f.tooltip.visible, "position": list(f.tooltip.position)}
        if f.tooltip is not None
        else None,
    }


def project_layer(layer: LayerMeta) -> dict[str, Any]:
    return {"id": layer.id, "title": layer.title, "editable": layer.editable}


def project_read_only(dataset: ReadOnlyDataset) -> dict[str, Any]:
    return {
        "info": {"id": dataset.id, "label": dataset.label},
        "data": {
            "type": "FeatureCollection",
            "features": [_geojson_feature(f) for f in dataset.features],
        },
        "config": dataset.config,
    }


def _geojson_feature(f: PolygonFeature) -> dict[str, Any]:
    return {
        "type": "Feature",
        "id": f.id,
        "geometry": _geometry(f.rings),
        "properties": f.props,
    }


def _geometry(rings) -> dict[str, Any]:
    return {
        "type": "Polygon",
        "coordinates": [[[lon, lat] for lon, lat in ring] for ring in rings],
    }
