from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from domain.coordinates import CoordinateSpace
from domain.models import POSITION_FIELDS, Point, SceneModel, clamp_percent

logger = logging.getLogger(__name__)

ChangeListener = Callable[[SceneModel], None]

DRAGGABLE_HANDLES = frozenset(
    {
        ("player", "body"),
        ("marker", "body"),
        ("arrow", "start"),
        ("arrow", "end"),
    }
)


@dataclass(frozen=True)
class HitTestConfig:
    player_radius: float = 18.0
    marker_radius: float = 12.0
    handle_radius: float = 10.0
    line_tolerance: float = 6.0


@dataclass(frozen=True)
class DragTarget:
    kind: str
    entity_id: str
    handle: str = "body"

    @property
    def endpoint(self) -> Optional[str]:
        return None if self.handle == "body" else self.handle

    def is_draggable(self) -> bool:
        return (self.kind, self.handle) in DRAGGABLE_HANDLES


@dataclass(frozen=True)
class Idle:
    name: str = "idle"


@dataclass(frozen=True)
class Dragging:
    target: DragTarget
    name: str = "dragging"


InteractionState = Union[Idle, Dragging]


def _distance_to_segment(point: Point, start: Point, end: Point) -> float:
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(point.x - start.x, point.y - start.y)
    t = ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    nearest_x = start.x + t * dx
    nearest_y = start.y + t * dy
    return math.hypot(point.x - nearest_x, point.y - nearest_y)


class InteractionController:
    """Pointer-driven editing state machine over a SceneModel.

    Two states: Idle and Dragging(target). A pointer down on a draggable glyph
    captures it, every move writes the clamped percent position straight into
    the scene, and pointer up or leaving the surface releases the capture.
    Double activation deletes an entity regardless of the drag state.

    Surface coordinates go through the CoordinateSpace; the controller never
    does its own percent math.
    """

    def __init__(
        self,
        scene: SceneModel,
        space: CoordinateSpace,
        *,
        editing_enabled: bool = True,
        hit_config: HitTestConfig | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        self.scene = scene
        self.space = space
        self.hit_config = hit_config or HitTestConfig()
        self.on_change = on_change
        self._editing_enabled = editing_enabled
        self._state: InteractionState = Idle()

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def is_dragging(self) -> bool:
        return isinstance(self._state, Dragging)

    @property
    def capture(self) -> Optional[DragTarget]:
        return self._state.target if isinstance(self._state, Dragging) else None

    @property
    def editing_enabled(self) -> bool:
        return self._editing_enabled

    def set_editing_enabled(self, enabled: bool) -> None:
        self._editing_enabled = enabled
        if not enabled:
            self._release()

    def bind_scene(self, scene: SceneModel) -> None:
        self._release()
        self.scene = scene

    def pointer_down(self, px: float, py: float, target: DragTarget | None = None) -> bool:
        if not self._editing_enabled or self.is_dragging:
            return False
        if target is None:
            target = self.hit_test(px, py)
        elif not target.is_draggable():
            logger.debug("Ignoring pointer down on non-draggable %s", target)
            return False
        elif self.scene.find_entity(target.kind, target.entity_id) is None:
            return False
        if target is None:
            return False
        self._state = Dragging(target)
        logger.debug("Captured %s %s (%s)", target.kind, target.entity_id, target.handle)
        return True

    def pointer_move(self, px: float, py: float) -> bool:
        target = self.capture
        if target is None:
            return False
        percent = self.space.to_percent(px, py)
        changed = self.scene.update_position(
            target.kind,
            target.entity_id,
            clamp_percent(percent.x),
            clamp_percent(percent.y),
            endpoint=target.endpoint,
        )
        if changed:
            self._notify()
        return changed

    def pointer_up(self) -> bool:
        return self._release()

    def pointer_leave(self) -> bool:
        return self._release()

    def double_activate(self, kind: str, entity_id: str) -> bool:
        if not self._editing_enabled:
            return False
        removed = self.scene.remove_entity(kind, entity_id)
        if removed:
            logger.debug("Deleted %s %s", kind, entity_id)
            self._notify()
        return removed

    def double_activate_at(self, px: float, py: float) -> bool:
        if not self._editing_enabled:
            return False
        picked = self.pick_deletable(px, py)
        if picked is None:
            return False
        return self.double_activate(*picked)

    def hit_test(self, px: float, py: float) -> Optional[DragTarget]:
        """Return the topmost draggable glyph under a surface point.

        Endpoint handles sit above players, players above markers. Within a
        collection later entities are drawn on top and are tested first.
        """
        point = Point(px, py)
        radius = self.hit_config
        for arrow in reversed(self.scene.arrows):
            for handle in ("end", "start"):
                if self._near(arrow, "arrow", handle, point, radius.handle_radius):
                    return DragTarget("arrow", arrow.id, handle)
        for player in reversed(self.scene.players):
            if self._near(player, "player", "body", point, radius.player_radius):
                return DragTarget("player", player.id)
        for marker in reversed(self.scene.markers):
            if self._near(marker, "marker", "body", point, radius.marker_radius):
                return DragTarget("marker", marker.id)
        return None

    def pick_deletable(self, px: float, py: float) -> Optional[Tuple[str, str]]:
        target = self.hit_test(px, py)
        if target is not None:
            return target.kind, target.entity_id
        point = Point(px, py)
        tolerance = self.hit_config.line_tolerance
        for kind in ("arrow", "dimension_label"):
            for entity in reversed(self.scene.entities(kind)):
                start, end = self._segment(entity, kind)
                if _distance_to_segment(point, start, end) <= tolerance:
                    return kind, entity.id
        return None

    def _near(self, entity: object, kind: str, handle: str, point: Point, radius: float) -> bool:
        x_attr, y_attr = POSITION_FIELDS[kind][handle]
        center = self.space.to_surface(getattr(entity, x_attr), getattr(entity, y_attr))
        return self.space.surface_distance(center, point) <= radius

    def _segment(self, entity: object, kind: str) -> Tuple[Point, Point]:
        points: Iterable[Tuple[str, str]] = (
            POSITION_FIELDS[kind]["start"],
            POSITION_FIELDS[kind]["end"],
        )
        start, end = (
            self.space.to_surface(getattr(entity, x_attr), getattr(entity, y_attr))
            for x_attr, y_attr in points
        )
        return start, end

    def _release(self) -> bool:
        if not self.is_dragging:
            return False
        logger.debug("Released %s", self.capture)
        self._state = Idle()
        return True

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.scene)
