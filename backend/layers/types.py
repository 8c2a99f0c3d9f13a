from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias, Union


Ring: TypeAlias = tuple[tuple[float, float], ...]  # ((lon, lat), ...)
Rings: TypeAlias = tuple[Ring, ...]  # (outer_ring, *holes)


def normalize_id(raw: Any) -> str:
    """
    Canonical text form of a feature id as it travels between collaborators.

    The drawing tool, the form widgets and the backend disagree on types
    ("7", 7, 7.0), so lookups compare this form. It is never used to decide
    whether a feature is persisted; that is what `FeatureKey` is for.
    """
    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, int):
        return str(raw)
    if isinstance(raw, float):
        return str(int(raw)) if raw.is_integer() else repr(raw)
    s = str(raw).strip()
    try:
        f = float(s)
    except ValueError:
        return s
    if f.is_integer() and "e" not in s.lower():
        return str(int(f))
    return s


@dataclass(frozen=True)
class Draft:
    """A feature drawn locally; the backend has never seen it."""

    temp_id: str

    @property
    def id(self) -> str:
        return self.temp_id


@dataclass(frozen=True)
class Persisted:
    """A feature the backend confirmed, carrying its server-assigned id."""

    server_id: int

    @property
    def id(self) -> str:
        return str(self.server_id)


FeatureKey: TypeAlias = Union[Draft, Persisted]


def draft_key(raw_id: Any) -> Draft:
    return Draft(temp_id=normalize_id(raw_id))


def persisted_key(raw_id: Any) -> Persisted:
    return Persisted(server_id=int(normalize_id(raw_id)))


@dataclass(frozen=True)
class FeatureProperties:
    title: str
    description: str
    layer_id: int | None


@dataclass(frozen=True)
class Tooltip:
    visible: bool
    # Screen pixels of the click that opened it: (x, y).
    position: tuple[float, float]


@dataclass(frozen=True)
class Feature:
    key: FeatureKey
    rings: Rings
    # None until the details of a freshly drawn feature are filled in.
    properties: FeatureProperties | None = None
    layer_id: int | None = None
    tooltip: Tooltip | None = None

    @property
    def id(self) -> str:
        return self.key.id

    @property
    def is_persisted(self) -> bool:
        return isinstance(self.key, Persisted)


@dataclass(frozen=True)
class LayerMeta:
    """
    One entry of the backend layer catalog.

    Non-editable layers are display-only: they never take part in
    selection or in a save cycle.
    """

    id: int
    title: str
    editable: bool


@dataclass(frozen=True)
class PolygonFeature:
    """A display-only polygon (read-only dataset)."""

    id: str
    rings: Rings
    props: dict[str, Any]


@dataclass(frozen=True)
class ReadOnlyDataset:
    """
    Display-only polygons plus the map config used to draw them.

    This data never enters the editor state.
    """

    id: str
    label: str
    features: tuple[PolygonFeature, ...]
    config: dict[str, Any]
