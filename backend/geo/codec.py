from __future__ import annotations

import json
from typing import Any, Literal

from shapely import wkt as shapely_wkt
from shapely.errors import ShapelyError
from shapely.geometry import Point, Polygon, mapping

from layers.types import Ring, Rings


GeometryEncoding = Literal["geojson", "wkt"]


def rings_from_wkt(text: str) -> Rings:
    """
    Parse a backend `geom` field (WKT) into ring geometry.

    Only POLYGON is accepted; the editor has no notion of multi-part features.
    Raises ValueError on anything it cannot turn into a polygon.
    """
    try:
        geom = shapely_wkt.loads(text)
    except (ShapelyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid WKT geometry: {e}") from e
    if not isinstance(geom, Polygon):
        raise ValueError(f"Expected POLYGON, got {geom.geom_type}")
    if geom.is_empty:
        raise ValueError("Empty polygon")
    return _rings_of(geom)


def rings_from_geojson(geometry: dict[str, Any]) -> Rings:
    coords = (geometry or {}).get("coordinates") or []
    rings = tuple(r for r in (_to_ring(r) for r in coords) if r)
    if not rings:
        raise ValueError("Polygon without coordinates")
    return rings


def encode_rings(rings: Rings, encoding: GeometryEncoding = "geojson") -> str:
    """
    Serialize rings into the text the backend stores.

    `geojson` mirrors what the drawing tool emits (a GeoJSON geometry object
    as a JSON string); `wkt` mirrors what the list endpoints return.
    """
    poly = to_polygon(rings)
    if encoding == "wkt":
        return poly.wkt
    return json.dumps(mapping(poly))


def to_polygon(rings: Rings) -> Polygon:
    if not rings:
        return Polygon()
    outer = _ensure_closed(list(rings[0]))
    holes = [_ensure_closed(list(r)) for r in rings[1:] if len(r) >= 3]
    return Polygon(outer, holes=holes if holes else None)


def covers_point(rings: Rings, lon: float, lat: float) -> bool:
    # covers() counts boundary points as inside
    try:
        return bool(to_polygon(rings).covers(Point(float(lon), float(lat))))
    except (ShapelyError, ValueError):
        return False


def _rings_of(poly: Polygon) -> Rings:
    out = [_to_ring(poly.exterior.coords)]
    out.extend(_to_ring(r.coords) for r in poly.interiors)
    return tuple(r for r in out if r)


def _to_ring(ring: Any) -> Ring:
    out: list[tuple[float, float]] = []
    for p in ring or []:
        if p is None or len(p) < 2:
            continue
        out.append((float(p[0]), float(p[1])))
    return tuple(out)


def _ensure_closed(ring: list[tuple[float, float]]) -> list[tuple[float, float]]:
    if not ring:
        return ring
    if ring[0] != ring[-1]:
        return [*ring, ring[0]]
    return ring
