from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from editor.types import EditorState, ErrorStatus, find_feature
from editor.visibility import visible_features
from layers.types import (
    Draft,
    Feature,
    FeatureKey,
    FeatureProperties,
    LayerMeta,
    normalize_id,
)


def record_drawn(state: EditorState, feature: Feature) -> EditorState:
    """
    A polygon finished on the drawing surface.

    The drawing tool re-emits its whole feature list on every change, so the
    same feature can arrive more than once; only the first arrival counts.
    """
    if find_feature(state.loaded_features, feature.id) is not None:
        return state
    if find_feature(state.features, feature.id) is not None:
        return state
    return replace(
        state,
        loaded_features=(*state.loaded_features, feature),
        features=(*state.features, feature),
        new_feature_modal_open=True,
    )


def set_editable_layers(state: EditorState, layer_ids: Iterable[Any]) -> EditorState:
    # Catalog-known read-only layers never become editable.
    read_only = {layer.id for layer in state.layers if not layer.editable}
    selected = frozenset(
        lid
        for lid in (int(normalize_id(raw)) for raw in layer_ids)
        if lid not in read_only
    )
    features = _recompute_active(state, selected, state.loaded_features)
    if selected == state.selected_layers and features is state.features:
        return state
    return replace(state, selected_layers=selected, features=features)


def update_feature(
    state: EditorState,
    feature_id: Any,
    title: str,
    description: str,
    layer_id: int,
) -> EditorState:
    """
    Apply the details form to one feature.

    First save of a drawn feature attaches its properties and closes the
    modal. If the feature lands on a layer that is not selected it leaves
    the active set (and loses focus); otherwise it becomes the focused one.
    An unknown id, or one already marked for deletion, changes nothing.
    """
    fid = normalize_id(feature_id)
    target = find_feature(state.features, fid) or find_feature(
        state.loaded_features, fid
    )
    if target is None or target.key in state.deleted:
        return state

    updated = replace(
        target,
        properties=FeatureProperties(
            title=title, description=description, layer_id=layer_id
        ),
        layer_id=layer_id,
    )
    modal_open = state.new_feature_modal_open
    if target.properties is None:
        modal_open = False

    loaded = _replace_feature(state.loaded_features, updated)
    hidden = state.selected_layers is not None and layer_id not in state.selected_layers

    if hidden:
        features = _drop_feature(state.features, fid)
        selected_id = None
    else:
        if find_feature(state.features, fid) is not None:
            features = _replace_feature(state.features, updated)
        else:
            features = _recompute_active(state, state.selected_layers, loaded)
        # Focus only what is on the surface.
        selected_id = state.selected_id
        if find_feature(features, fid) is not None:
            selected_id = fid

    return replace(
        state,
        loaded_features=loaded,
        features=features,
        selected_id=selected_id,
        new_feature_modal_open=modal_open,
    )


def delete_feature(state: EditorState, feature_id: Any) -> EditorState:
    """
    Mark a feature for deletion.

    The feature leaves the active set right away but stays in
    `loaded_features` until a save cycle reconciles the delete.
    """
    fid = normalize_id(feature_id)
    target = find_feature(state.features, fid) or find_feature(
        state.loaded_features, fid
    )
    if target is None:
        return state

    features = _drop_feature(state.features, fid)
    deleted = state.deleted
    if target.key not in deleted:
        deleted = (*deleted, target.key)
    if features is state.features and deleted is state.deleted:
        return state

    modal_open = state.new_feature_modal_open
    if target.properties is None:
        modal_open = False
    return replace(
        state,
        features=features,
        deleted=deleted,
        selected_id=None if state.selected_id == fid else state.selected_id,
        new_feature_modal_open=modal_open,
    )


def merge_features(
    state: EditorState,
    incoming: Iterable[Feature],
    *,
    layer_id: int | None = None,
) -> EditorState:
    """
    Merge fetched features, skipping ids that are already loaded.

    With `layer_id`, the merge is the result of a per-layer fetch: an already
    loaded layer is ignored entirely, a new one is recorded once.
    """
    if layer_id is not None and layer_id in state.loaded_layers:
        return replace(state, status="idle", error=None)

    known = {f.id for f in state.loaded_features}
    fresh: list[Feature] = []
    for f in incoming:
        if f.id in known:
            continue
        known.add(f.id)
        fresh.append(f)

    loaded = (*state.loaded_features, *fresh) if fresh else state.loaded_features
    loaded_layers = state.loaded_layers
    if layer_id is not None:
        loaded_layers = (*loaded_layers, layer_id)

    return replace(
        state,
        loaded_features=loaded,
        loaded_layers=loaded_layers,
        features=_recompute_active(state, state.selected_layers, loaded),
        status="idle",
        error=None,
    )


def set_layer_catalog(state: EditorState, layers: Iterable[LayerMeta]) -> EditorState:
    return replace(state, layers=tuple(layers), status="idle", error=None)


def select_feature(state: EditorState, feature_id: Any | None) -> EditorState:
    """
    Move focus to a feature of the active set, or clear it with None.

    Whatever tooltip the previously focused feature had is dropped.
    """
    if feature_id is None:
        fid = None
    else:
        fid = normalize_id(feature_id)
        if find_feature(state.features, fid) is None:
            return state
    if fid == state.selected_id:
        return state

    features = state.features
    loaded = state.loaded_features
    previous = state.selected_feature
    if previous is not None and previous.tooltip is not None:
        cleared = replace(previous, tooltip=None)
        features = _replace_feature(features, cleared)
        loaded = _replace_feature(loaded, cleared)
    return replace(state, features=features, loaded_features=loaded, selected_id=fid)


def replace_feature(state: EditorState, updated: Feature) -> EditorState:
    return replace(
        state,
        features=_replace_feature(state.features, updated),
        loaded_features=_replace_feature(state.loaded_features, updated),
    )


def mark_loading(state: EditorState) -> EditorState:
    if state.status == "loading" and state.error is None:
        return state
    return replace(state, status="loading", error=None)


def record_error(state: EditorState, error: ErrorStatus) -> EditorState:
    return replace(state, status="error", error=error)


def mark_saved(
    state: EditorState, reconciled: Iterable[FeatureKey] | None = None
) -> EditorState:
    """
    A save cycle succeeded: the deletions it carried are reconciled, so purge
    them. Deletions marked while the cycle was in flight stay pending.
    """
    gone = set(state.deleted if reconciled is None else reconciled)
    gone &= set(state.deleted)
    if gone:
        loaded = tuple(f for f in state.loaded_features if f.key not in gone)
        deleted = tuple(k for k in state.deleted if k not in gone)
    else:
        loaded = state.loaded_features
        deleted = state.deleted
    return replace(
        state, loaded_features=loaded, deleted=deleted, status="saved", error=None
    )


def _recompute_active(
    state: EditorState,
    selected: frozenset[int] | None,
    loaded: tuple[Feature, ...],
) -> tuple[Feature, ...]:
    if selected is None:
        # No layer selection yet: the active set is whatever was drawn here.
        active = tuple(
            f for f in loaded if find_feature(state.features, f.id) is not None
        )
    else:
        active = visible_features(loaded, selected, state.deleted)
        # Drawn polygons still waiting for their details have no layer yet;
        # they stay on the editing surface until the modal is answered.
        pending = {
            f.key
            for f in state.features
            if f.properties is None and isinstance(f.key, Draft)
        }
        if pending:
            keep = {f.key for f in active} | pending
            active = tuple(f for f in loaded if f.key in keep)

    current = state.features
    if len(active) == len(current) and all(a is b for a, b in zip(active, current)):
        return current
    return active


def _replace_feature(
    features: tuple[Feature, ...], updated: Feature
) -> tuple[Feature, ...]:
    for i, f in enumerate(features):
        if f.id == updated.id:
            if f is updated:
                return features
            return (*features[:i], updated, *features[i + 1 :])
    return features


def _drop_feature(features: tuple[Feature, ...], fid: str) -> tuple[Feature, ...]:
    for i, f in enumerate(features):
        if f.id == fid:
            return (*features[:i], *features[i + 1 :])
    return features
