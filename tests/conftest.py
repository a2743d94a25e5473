from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from app.config import AppSettings, EditorSettings, NormalizerSettings, SurfaceSettings
from domain.coordinates import CoordinateSpace
from domain.models import SceneModel
from tests.helpers.scene_fixtures import build_sample_scene


def _clear_drill_env() -> None:
    for key in list(os.environ):
        if key.startswith("DRILL_"):
            os.environ.pop(key, None)


_clear_drill_env()


@pytest.fixture(autouse=True)
def clear_drill_env() -> Generator[None, None, None]:
    _clear_drill_env()
    yield
    _clear_drill_env()


@pytest.fixture
def space() -> CoordinateSpace:
    return CoordinateSpace(400, 400)


@pytest.fixture
def sample_scene() -> SceneModel:
    return build_sample_scene()


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        title="Test Diagrams",
        log_level="WARNING",
        max_sessions=8,
        surface=SurfaceSettings(width=400, height=400, margin=0.05),
        editor=EditorSettings(),
        normalizer=NormalizerSettings(),
    )


@pytest.fixture
def app_settings_factory(app_settings: AppSettings) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return app_settings.model_copy(update=overrides)

    return _factory
