from __future__ import annotations

from typing import Iterable

from layers.types import Feature, FeatureKey


def visible_features(
    loaded_features: Iterable[Feature],
    layer_ids: Iterable[int] | None,
    deleted: Iterable[FeatureKey] = (),
) -> tuple[Feature, ...]:
    """
    Project loaded features onto the selected layers, keeping load order.

    Features waiting for a delete to be reconciled stay hidden even though
    they are still in `loaded_features`.
    """
    if layer_ids is None:
        return ()
    wanted = set(layer_ids)
    if not wanted:
        return ()
    gone = set(deleted)
    return tuple(
        f for f in loaded_features if f.layer_id in wanted and f.key not in gone
    )
