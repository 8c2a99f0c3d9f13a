from editor import store
from editor.selection import layer_click
from editor.types import EditorState
from layers.types import Feature, FeatureProperties, persisted_key

SQUARE = (((0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0), (0.0, 0.0)),)


def _state_with_selection() -> EditorState:
    f = Feature(
        key=persisted_key(4),
        rings=SQUARE,
        properties=FeatureProperties(title="a", description="", layer_id=1),
        layer_id=1,
    )
    state = store.merge_features(EditorState(), [f], layer_id=1)
    state = store.set_editable_layers(state, [1])
    return store.select_feature(state, 4)


def test_click_inside_selected_polygon_opens_tooltip():
    state = layer_click(_state_with_selection(), (1.0, 1.0), (120, 80))
    tooltip = state.selected_feature.tooltip
    assert tooltip is not None
    assert tooltip.visible is True
    assert tooltip.position == (120.0, 80.0)


def test_click_on_boundary_counts_as_inside():
    state = layer_click(_state_with_selection(), (2.0, 1.0), (0, 0))
    assert state.selected_feature.tooltip is not None


def test_click_outside_clears_tooltip():
    state = layer_click(_state_with_selection(), (1.0, 1.0), (10, 10))
    assert state.selected_feature.tooltip is not None

    state = layer_click(state, (5.0, 5.0), (10, 10))
    assert state.selected_feature.tooltip is None


def test_click_without_selection_is_a_no_op():
    state = store.select_feature(_state_with_selection(), None)
    assert layer_click(state, (1.0, 1.0), (0, 0)) is state


def test_changing_selection_drops_previous_tooltip():
    state = layer_click(_state_with_selection(), (1.0, 1.0), (10, 10))
    state = store.select_feature(state, None)
    f = [x for x in state.features if x.id == "4"][0]
    assert f.tooltip is None
