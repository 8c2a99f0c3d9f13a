from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from layers.types import Feature, FeatureKey, LayerMeta, normalize_id


SyncStatus = Literal["idle", "loading", "saved", "error"]


@dataclass(frozen=True)
class ErrorStatus:
    status: int | None
    message: str
    url: str | None = None

    @classmethod
    def from_error(cls, e: Exception) -> "ErrorStatus":
        return cls(
            status=getattr(e, "status", None),
            message=str(getattr(e, "message", None) or e),
            url=getattr(e, "url", None),
        )


@dataclass(frozen=True)
class EditorState:
    """
    One immutable snapshot of the editor.

    Transitions in `editor.store` return new snapshots and share every branch
    they did not touch, so `old.features is new.features` is a valid
    "nothing to redraw" check for the rendering side.
    """

    loaded_features: tuple[Feature, ...] = ()
    loaded_layers: tuple[int, ...] = ()
    features: tuple[Feature, ...] = ()
    # None until the first layer selection; afterwards the active layer set.
    selected_layers: frozenset[int] | None = None
    deleted: tuple[FeatureKey, ...] = ()
    selected_id: str | None = None
    new_feature_modal_open: bool = False
    layers: tuple[LayerMeta, ...] = ()
    status: SyncStatus = "idle"
    error: ErrorStatus | None = None

    @property
    def deleted_ids(self) -> tuple[str, ...]:
        return tuple(k.id for k in self.deleted)

    @property
    def selected_feature(self) -> Feature | None:
        if self.selected_id is None:
            return None
        return find_feature(self.features, self.selected_id)

    def editable_layers(self) -> tuple[LayerMeta, ...]:
        return tuple(layer for layer in self.layers if layer.editable)


def find_feature(features: tuple[Feature, ...], raw_id: Any) -> Feature | None:
    fid = normalize_id(raw_id)
    for f in features:
        if f.id == fid:
            return f
    return None
