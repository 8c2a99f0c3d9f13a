from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Literal, TypeAlias, Union

from pydantic import BaseModel, Field

from editor import store
from editor.selection import layer_click
from editor.types import EditorState, ErrorStatus
from geo.codec import rings_from_geojson
from layers.types import Feature, FeatureKey, LayerMeta, draft_key


FeatureId: TypeAlias = Union[int, float, str]


#
# Commands built by collaborators (map surface, forms, layer picker).
#


class PolygonGeometry(BaseModel):
    type: Literal["Polygon"] = "Polygon"
    # [ring, ...]; each ring is [[lon, lat], ...]
    coordinates: list[list[Annotated[list[float], Field(min_length=2)]]] = Field(
        min_length=1
    )


class RecordDrawnPayload(BaseModel):
    # Temporary id assigned by the drawing tool.
    id: FeatureId
    geometry: PolygonGeometry


class RecordDrawn(BaseModel):
    action: Literal["record_drawn"] = "record_drawn"
    payload: RecordDrawnPayload


class SetEditableLayersPayload(BaseModel):
    layer_ids: list[int]


class SetEditableLayers(BaseModel):
    action: Literal["set_editable_layers"] = "set_editable_layers"
    payload: SetEditableLayersPayload


class UpdateFeaturePayload(BaseModel):
    id: FeatureId
    title: str = ""
    description: str = ""
    layer_id: int


class UpdateFeature(BaseModel):
    action: Literal["update_feature"] = "update_feature"
    payload: UpdateFeaturePayload


class FeatureRefPayload(BaseModel):
    id: FeatureId | None = None


class DeleteFeature(BaseModel):
    action: Literal["delete_feature"] = "delete_feature"
    payload: FeatureRefPayload


class SelectFeature(BaseModel):
    action: Literal["select_feature"] = "select_feature"
    payload: FeatureRefPayload


class LayerClickPayload(BaseModel):
    lng_lat: tuple[float, float]
    # Screen pixels (x, y) of the click.
    position: tuple[float, float]


class LayerClick(BaseModel):
    action: Literal["layer_click"] = "layer_click"
    payload: LayerClickPayload


ClientCommand = Annotated[
    Union[
        RecordDrawn,
        SetEditableLayers,
        UpdateFeature,
        DeleteFeature,
        SelectFeature,
        LayerClick,
    ],
    Field(discriminator="action"),
]


#
# Commands issued by the remote loader and the sync coordinator. They carry
# already-parsed domain objects, so they are plain dataclasses.
#


@dataclass(frozen=True)
class FeaturesFetched:
    action: ClassVar[str] = "features_fetched"
    features: tuple[Feature, ...]
    layer_id: int | None = None

    def summary(self) -> dict[str, Any]:
        return {"count": len(self.features), "layer_id": self.layer_id}


@dataclass(frozen=True)
class LayerCatalogFetched:
    action: ClassVar[str] = "layer_catalog_fetched"
    layers: tuple[LayerMeta, ...]

    def summary(self) -> dict[str, Any]:
        return {"count": len(self.layers)}


@dataclass(frozen=True)
class RemoteCallStarted:
    action: ClassVar[str] = "remote_call_started"
    operation: str

    def summary(self) -> dict[str, Any]:
        return {"operation": self.operation}


@dataclass(frozen=True)
class RemoteCallFailed:
    action: ClassVar[str] = "remote_call_failed"
    error: ErrorStatus
    failures: int = 1

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.error.status,
            "message": self.error.message,
            "failures": self.failures,
        }


@dataclass(frozen=True)
class SaveSucceeded:
    action: ClassVar[str] = "save_succeeded"
    created: int = 0
    updated: int = 0
    deleted: int = 0
    # Deletions this cycle carried (drafts included); only these are purged.
    reconciled: tuple[FeatureKey, ...] = ()

    def summary(self) -> dict[str, Any]:
        return {"created": self.created, "updated": self.updated, "deleted": self.deleted}


InternalCommand: TypeAlias = Union[
    FeaturesFetched,
    LayerCatalogFetched,
    RemoteCallStarted,
    RemoteCallFailed,
    SaveSucceeded,
]

Command: TypeAlias = Union[
    RecordDrawn,
    SetEditableLayers,
    UpdateFeature,
    DeleteFeature,
    SelectFeature,
    LayerClick,
    InternalCommand,
]


def command_summary(command: Command) -> dict[str, Any]:
    if isinstance(command, BaseModel):
        return command.model_dump(mode="json").get("payload") or {}
    return command.summary()


def reduce(state: EditorState, command: Command) -> EditorState:
    """
    Apply one command to a snapshot and return the next snapshot.
    """
    if isinstance(command, RecordDrawn):
        p = command.payload
        feature = Feature(
            key=draft_key(p.id),
            rings=rings_from_geojson(p.geometry.model_dump()),
        )
        return store.record_drawn(state, feature)
    if isinstance(command, SetEditableLayers):
        return store.set_editable_layers(state, command.payload.layer_ids)
    if isinstance(command, UpdateFeature):
        p = command.payload
        return store.update_feature(state, p.id, p.title, p.description, p.layer_id)
    if isinstance(command, DeleteFeature):
        if command.payload.id is None:
            return state
        return store.delete_feature(state, command.payload.id)
    if isinstance(command, SelectFeature):
        return store.select_feature(state, command.payload.id)
    if isinstance(command, LayerClick):
        return layer_click(state, command.payload.lng_lat, command.payload.position)
    if isinstance(command, FeaturesFetched):
        return store.merge_features(state, command.features, layer_id=command.layer_id)
    if isinstance(command, LayerCatalogFetched):
        return store.set_layer_catalog(state, command.layers)
    if isinstance(command, RemoteCallStarted):
        return store.mark_loading(state)
    if isinstance(command, RemoteCallFailed):
        return store.record_error(state, command.error)
    if isinstance(command, SaveSucceeded):
        return store.mark_saved(state, command.reconciled)
    raise ValueError(f"Unknown command: {type(command).__name__}")
