from __future__ import annotations

import logging
from typing import Any, Iterable

from geo.codec import rings_from_geojson, rings_from_wkt
from layers.types import (
    Feature,
    FeatureProperties,
    LayerMeta,
    PolygonFeature,
    normalize_id,
    persisted_key,
)

logger = logging.getLogger(__name__)


def feature_from_record(
    record: dict[str, Any], *, layer_id: int | None = None
) -> Feature:
    """
    Turn one polygon-service record into a persisted feature.

    Input: `{id, geom, title, description, layer_id}` with `geom` as WKT.
    `layer_id` (the layer that was asked for) wins over the record's own.
    Raises ValueError/TypeError/KeyError on a record that cannot be used.
    """
    rings = rings_from_wkt(record["geom"])
    owner = layer_id if layer_id is not None else _opt_int(record.get("layer_id"))
    return Feature(
        key=persisted_key(record["id"]),
        rings=rings,
        properties=FeatureProperties(
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            layer_id=owner,
        ),
        layer_id=owner,
    )


def features_from_records(
    records: Iterable[dict[str, Any]], *, layer_id: int | None = None
) -> list[Feature]:
    out: list[Feature] = []
    for record in records:
        try:
            out.append(feature_from_record(record, layer_id=layer_id))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Skipping polygon record %r: %s", (record or {}).get("id"), e
            )
    return out


def layer_catalog_from_records(records: Iterable[dict[str, Any]]) -> list[LayerMeta]:
    out: list[LayerMeta] = []
    for record in records:
        try:
            lid = int(normalize_id(record["id"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping layer record without a usable id: %r", record)
            continue
        out.append(
            LayerMeta(
                id=lid,
                title=str(record.get("title") or f"Layer {lid}"),
                editable=bool(record.get("editable")),
            )
        )
    return out


def load_geojson_polygons(data: dict[str, Any]) -> list[PolygonFeature]:
    """
    Input: a GeoJSON FeatureCollection. Non-polygon features are dropped;
    MultiPolygons are split into one feature per part.
    """
    features = (data or {}).get("features") or []

    out: list[PolygonFeature] = []
    for i, feature in enumerate(features):
        geom = (feature or {}).get("geometry") or {}
        props = (feature or {}).get("properties") or {}
        gtype = geom.get("type")
        coords = geom.get("coordinates")
        if not coords:
            continue

        fid = str((feature or {}).get("id") or props.get("id") or f"poly-{i}")

        try:
            if gtype == "Polygon":
                out.append(
                    PolygonFeature(id=fid, rings=rings_from_geojson(geom), props=props)
                )
            elif gtype == "MultiPolygon":
                for j, poly in enumerate(coords):
                    rings = rings_from_geojson({"coordinates": poly})
                    out.append(PolygonFeature(id=f"{fid}-{j}", rings=rings, props=props))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping read-only feature %s: %s", fid, e)

    return out


def _opt_int(v: Any) -> int | None:
    if v is None or v == "":
        return None
    try:
        return int(normalize_id(v))
    except (TypeError, ValueError):
        return None
