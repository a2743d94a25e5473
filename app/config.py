from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.coordinates import DEFAULT_MARGIN, CoordinateSpace
from domain.models import DEFAULT_COURT_SIZE
from domain.services.interaction_controller import HitTestConfig
from domain.services.normalize_generation_output import GenerationOutputNormalizer

DEFAULT_CONFIG_PATH = Path("config/drill.yaml")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class SurfaceSettings(BaseModel):
    width: float = Field(400.0, gt=0)
    height: float = Field(400.0, gt=0)
    margin: float = DEFAULT_MARGIN

    @field_validator("margin", mode="after")
    @classmethod
    def ensure_margin_fraction(cls, value: float) -> float:
        if not 0 <= value < 0.5:
            msg = "surface.margin must be a fraction in [0, 0.5)"
            raise ValueError(msg)
        return value

    def to_coordinate_space(self) -> CoordinateSpace:
        return CoordinateSpace(self.width, self.height, self.margin)


class EditorSettings(BaseModel):
    editing_enabled: bool = True
    player_hit_radius: float = Field(18.0, gt=0)
    marker_hit_radius: float = Field(12.0, gt=0)
    handle_hit_radius: float = Field(10.0, gt=0)
    line_hit_tolerance: float = Field(6.0, gt=0)

    def to_hit_config(self) -> HitTestConfig:
        return HitTestConfig(
            player_radius=self.player_hit_radius,
            marker_radius=self.marker_hit_radius,
            handle_radius=self.handle_hit_radius,
            line_tolerance=self.line_hit_tolerance,
        )


class NormalizerSettings(BaseModel):
    default_court_width: float = Field(DEFAULT_COURT_SIZE, gt=0)
    default_court_height: float = Field(DEFAULT_COURT_SIZE, gt=0)

    def build_normalizer(self) -> GenerationOutputNormalizer:
        return GenerationOutputNormalizer(
            default_court_width=self.default_court_width,
            default_court_height=self.default_court_height,
        )


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DRILL_", env_nested_delimiter="__")

    title: str = "Drill Diagram Editor"
    log_level: str = "INFO"
    max_sessions: int = Field(256, gt=0)
    surface: SurfaceSettings = SurfaceSettings()
    editor: EditorSettings = EditorSettings()
    normalizer: NormalizerSettings = NormalizerSettings()

    _yaml_path: ClassVar[Path | None] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in logging.getLevelNamesMapping():
            msg = f"Unknown log level: {value}"
            raise ValueError(msg)
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("DRILL_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(settings.log_level)
