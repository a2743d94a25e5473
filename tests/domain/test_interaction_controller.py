from __future__ import annotations

import pytest

from domain.coordinates import CoordinateSpace
from domain.models import SceneModel
from domain.services.interaction_controller import (
    DragTarget,
    Dragging,
    Idle,
    InteractionController,
)


def _scene() -> SceneModel:
    return SceneModel.model_validate(
        {
            "players": [
                {"id": "P", "x": 50, "y": 50, "team": "attack"},
                {"id": "Q", "x": 20, "y": 80, "team": "defense"},
            ],
            "arrows": [{"id": "A", "fromX": 20, "fromY": 80, "toX": 80, "toY": 20, "type": "pass"}],
            "markers": [{"id": "M", "x": 90, "y": 90, "type": "cone"}],
            "dimensionLabels": [
                {"id": "D", "x1": 0, "y1": 100, "x2": 100, "y2": 100, "label": "20m"}
            ],
        }
    )


def _controller(
    scene: SceneModel, space: CoordinateSpace, **kwargs: object
) -> InteractionController:
    return InteractionController(scene, space, **kwargs)  # type: ignore[arg-type]


def _at(space: CoordinateSpace, percent_x: float, percent_y: float) -> tuple[float, float]:
    point = space.to_surface(percent_x, percent_y)
    return point.x, point.y


def test_drag_outside_surface_clamps_to_bounds(space: CoordinateSpace) -> None:
    scene = _scene()
    controller = _controller(scene, space)

    assert controller.pointer_down(*_at(space, 50, 50))
    assert controller.state == Dragging(DragTarget("player", "P"))
    assert controller.pointer_move(*_at(space, 120, -10))
    assert controller.pointer_up()

    player = scene.get_entity("player", "P")
    assert (player.x, player.y) == (100, 0)
    assert controller.state == Idle()


@pytest.mark.parametrize(
    ("px", "py", "expected"),
    [(-500, 200, (0, 50)), (1000, 200, (100, 50)), (200, -1, (50, 0)), (200, 401, (50, 100))],
)
def test_each_axis_clamped_independently(
    space: CoordinateSpace, px: float, py: float, expected: tuple[float, float]
) -> None:
    scene = _scene()
    controller = _controller(scene, space)
    controller.pointer_down(0, 0, DragTarget("player", "P"))

    controller.pointer_move(px, py)

    player = scene.get_entity("player", "P")
    assert player.x == pytest.approx(expected[0])
    assert player.y == pytest.approx(expected[1])


def test_every_move_event_mutates_scene(space: CoordinateSpace) -> None:
    scene = _scene()
    changes: list[tuple[float, float]] = []

    def record(changed: SceneModel) -> None:
        marker = changed.get_entity("marker", "M")
        changes.append((round(marker.x, 6), round(marker.y, 6)))

    controller = _controller(scene, space, on_change=record)
    assert controller.pointer_down(*_at(space, 90, 90))
    for percent in (80, 70, 60):
        controller.pointer_move(*_at(space, percent, percent))
        marker = scene.get_entity("marker", "M")
        assert marker.x == pytest.approx(percent)

    assert changes == [(80, 80), (70, 70), (60, 60)]


def test_move_without_capture_is_ignored(space: CoordinateSpace) -> None:
    scene = _scene()
    before = scene.to_payload()
    controller = _controller(scene, space)

    assert controller.pointer_move(*_at(space, 10, 10)) is False
    assert controller.pointer_up() is False
    assert scene.to_payload() == before


def test_second_pointer_down_ignored_while_dragging(space: CoordinateSpace) -> None:
    scene = _scene()
    controller = _controller(scene, space)

    assert controller.pointer_down(*_at(space, 50, 50))
    assert controller.pointer_down(*_at(space, 90, 90)) is False
    assert controller.capture == DragTarget("player", "P")


def test_pointer_down_requires_editing(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space, editing_enabled=False)

    assert controller.pointer_down(*_at(space, 50, 50)) is False
    assert controller.state == Idle()


def test_disabling_editing_releases_capture(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space)
    controller.pointer_down(*_at(space, 50, 50))

    controller.set_editing_enabled(False)

    assert controller.state == Idle()
    assert controller.pointer_move(*_at(space, 10, 10)) is False


def test_pointer_down_on_empty_space_does_nothing(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space)

    assert controller.pointer_down(*_at(space, 5, 40)) is False
    assert controller.state == Idle()


def test_arrow_endpoint_drag_moves_only_that_endpoint(space: CoordinateSpace) -> None:
    scene = _scene()
    controller = _controller(scene, space)

    assert controller.pointer_down(*_at(space, 80, 20))
    assert controller.capture == DragTarget("arrow", "A", "end")
    controller.pointer_move(*_at(space, 60, 10))
    controller.pointer_leave()

    arrow = scene.get_entity("arrow", "A")
    assert (arrow.from_x, arrow.from_y) == (20, 80)
    assert arrow.to_x == pytest.approx(60)
    assert arrow.to_y == pytest.approx(10)
    assert arrow.type == "pass"


def test_arrow_handle_is_above_player(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space)

    assert controller.hit_test(*_at(space, 20, 80)) == DragTarget("arrow", "A", "start")


def test_arrow_body_is_not_draggable(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space)

    assert controller.pointer_down(*_at(space, 65, 35)) is False
    assert controller.pointer_down(0, 0, DragTarget("arrow", "A", "body")) is False
    assert controller.pointer_down(0, 0, DragTarget("dimension_label", "D", "start")) is False
    assert controller.state == Idle()


def test_explicit_target_for_missing_entity_ignored(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space)

    assert controller.pointer_down(0, 0, DragTarget("player", "ghost")) is False


def test_topmost_player_wins_hit_test(space: CoordinateSpace) -> None:
    scene = SceneModel.model_validate(
        {"players": [{"id": "under", "x": 40, "y": 40}, {"id": "over", "x": 41, "y": 40}]}
    )
    controller = _controller(scene, space)

    assert controller.hit_test(*_at(space, 40.5, 40)) == DragTarget("player", "over")


def test_double_activate_arrow_removes_only_that_arrow(space: CoordinateSpace) -> None:
    scene = _scene()
    before = scene.to_payload()
    controller = _controller(scene, space)

    assert controller.double_activate("arrow", "A")

    after = scene.to_payload()
    assert after["arrows"] == []
    assert after["players"] == before["players"]
    assert after["markers"] == before["markers"]
    assert after["dimensionLabels"] == before["dimensionLabels"]


def test_double_activate_captured_entity_deletes_it(space: CoordinateSpace) -> None:
    scene = _scene()
    controller = _controller(scene, space)
    controller.pointer_down(*_at(space, 50, 50))

    assert controller.double_activate("player", "P")
    assert controller.is_dragging
    assert controller.pointer_move(*_at(space, 10, 10)) is False
    assert controller.pointer_up()
    assert scene.find_entity("player", "P") is None
    assert [player.id for player in scene.players] == ["Q"]


def test_double_activate_missing_entity_is_silent(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space)

    assert controller.double_activate("marker", "M")
    assert controller.double_activate("marker", "M") is False


def test_double_activate_at_arrow_body(space: CoordinateSpace) -> None:
    scene = _scene()
    controller = _controller(scene, space)

    assert controller.double_activate_at(*_at(space, 65, 35))
    assert scene.arrows == []
    assert len(scene.players) == 2


def test_double_activate_at_dimension_label(space: CoordinateSpace) -> None:
    scene = _scene()
    controller = _controller(scene, space)

    assert controller.double_activate_at(*_at(space, 50, 100))
    assert scene.dimension_labels == []


def test_bind_scene_resets_capture(space: CoordinateSpace) -> None:
    controller = _controller(_scene(), space)
    controller.pointer_down(*_at(space, 50, 50))
    replacement = SceneModel()

    controller.bind_scene(replacement)

    assert controller.state == Idle()
    assert controller.scene is replacement
