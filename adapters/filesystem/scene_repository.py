from __future__ import annotations

from pathlib import Path

from filelock import FileLock

from adapters.filesystem.json_utils import load_json_object, write_json_atomic
from domain.models import SceneModel
from domain.ports.repositories import SceneRepository


class FileSystemSceneRepository(SceneRepository):
    """Stores scenes as their boundary JSON payload, one file per scene."""

    def load(self, path: Path) -> SceneModel:
        return SceneModel.model_validate(load_json_object(path)).clamp_to_bounds()

    def save(self, scene: SceneModel, path: Path) -> None:
        lock_path = path.with_suffix(f"{path.suffix}.lock")
        with FileLock(str(lock_path)):
            write_json_atomic(path, scene.to_payload())
