from __future__ import annotations

from pathlib import Path
from typing import Protocol

from domain.models import SceneModel


class SceneRepository(Protocol):
    def load(self, path: Path) -> SceneModel: ...

    def save(self, scene: SceneModel, path: Path) -> None: ...
