from __future__ import annotations

from dataclasses import replace

from editor.store import replace_feature
from editor.types import EditorState
from geo.codec import covers_point
from layers.types import Tooltip


def layer_click(
    state: EditorState,
    lng_lat: tuple[float, float],
    screen_position: tuple[float, float],
) -> EditorState:
    """
    Open or close the details tooltip of the focused feature.

    A click inside the focused polygon shows the tooltip at the click's screen
    position; a click anywhere else hides it. Without a focused feature the
    click is ignored (the map layer handles it on its own).
    """
    selected = state.selected_feature
    if selected is None:
        return state

    lon, lat = lng_lat
    if covers_point(selected.rings, lon, lat):
        tooltip = Tooltip(
            visible=True,
            position=(float(screen_position[0]), float(screen_position[1])),
        )
    else:
        tooltip = None

    if tooltip == selected.tooltip:
        return state
    return replace_feature(state, replace(selected, tooltip=tooltip))
