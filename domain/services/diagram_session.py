from __future__ import annotations

import logging
from typing import Any

from domain.coordinates import CoordinateSpace
from domain.models import SceneModel
from domain.services.interaction_controller import (
    ChangeListener,
    HitTestConfig,
    InteractionController,
)
from domain.services.normalize_generation_output import GenerationOutputNormalizer

logger = logging.getLogger(__name__)


class DiagramSession:
    """Owns the single scene being edited and its interaction controller.

    Generation results replace the scene wholesale. Each request takes a
    ticket from begin_generation(); a result is applied only when its ticket
    is still the most recently issued one, so an older request resolving
    late never overwrites a newer diagram.
    """

    def __init__(
        self,
        space: CoordinateSpace,
        *,
        normalizer: GenerationOutputNormalizer | None = None,
        editing_enabled: bool = True,
        hit_config: HitTestConfig | None = None,
        on_change: ChangeListener | None = None,
        scene: SceneModel | None = None,
    ) -> None:
        self.normalizer = normalizer or GenerationOutputNormalizer()
        self.controller = InteractionController(
            scene or self._blank_scene(),
            space,
            editing_enabled=editing_enabled,
            hit_config=hit_config,
            on_change=on_change,
        )
        self._latest_ticket = 0

    @property
    def scene(self) -> SceneModel:
        return self.controller.scene

    @property
    def latest_ticket(self) -> int:
        return self._latest_ticket

    def new_diagram(self) -> SceneModel:
        self._latest_ticket += 1
        self._replace(self._blank_scene())
        return self.scene

    def begin_generation(self) -> int:
        self._latest_ticket += 1
        return self._latest_ticket

    def is_current(self, ticket: int) -> bool:
        return ticket == self._latest_ticket

    def apply_generation(self, ticket: int, raw: Any) -> bool:
        if not self.is_current(ticket):
            logger.info(
                "Discarding generation %d, superseded by %d", ticket, self._latest_ticket
            )
            return False
        self._replace(self.normalizer.convert(raw))
        return True

    def _replace(self, scene: SceneModel) -> None:
        self.controller.bind_scene(scene)
        if self.controller.on_change is not None:
            self.controller.on_change(scene)

    def _blank_scene(self) -> SceneModel:
        return SceneModel(
            court_width=self.normalizer.default_court_width,
            court_height=self.normalizer.default_court_height,
        )
