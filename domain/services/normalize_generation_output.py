from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Set

import orjson

from domain.errors import EmptyOutput, MalformedGenerationOutput
from domain.models import (
    ARROW_TYPE_DEFAULT,
    ARROW_TYPES,
    CENTER,
    DEFAULT_COURT_SIZE,
    MARKER_TYPE_ALIASES,
    MARKER_TYPE_DEFAULT,
    ORIENTATION_DEFAULT,
    ORIENTATIONS,
    TEAMS,
    Arrow,
    DimensionLabel,
    Marker,
    Player,
    SceneModel,
    clamp_percent,
)

logger = logging.getLogger(__name__)

FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
ENVELOPE_KEY = "graphic"
SCENE_KEYS = frozenset(
    {"players", "arrows", "markers", "dimensionLabels", "courtWidth", "courtHeight"}
)
UNKNOWN_TEAM_DEFAULT = "neutral"

Payload = Dict[str, Any]


def extract_fenced_block(text: str) -> str:
    match = FENCED_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


class GenerationOutputNormalizer:
    """Turns raw text-generator output into a valid SceneModel.

    Whole-payload problems raise MalformedGenerationOutput or EmptyOutput.
    Anything wrong inside an entity is replaced by a default instead.
    """

    def __init__(
        self,
        default_court_width: float = DEFAULT_COURT_SIZE,
        default_court_height: float = DEFAULT_COURT_SIZE,
    ) -> None:
        self.default_court_width = default_court_width
        self.default_court_height = default_court_height

    def convert(self, raw: Any) -> SceneModel:
        payload = self._scene_payload(self._parse(raw))
        scene = SceneModel(
            court_width=self._positive(payload.get("courtWidth"), self.default_court_width),
            court_height=self._positive(payload.get("courtHeight"), self.default_court_height),
        )
        self._collect_players(payload, scene)
        self._collect_arrows(payload, scene)
        self._collect_markers(payload, scene)
        self._collect_dimension_labels(payload, scene)
        return scene.clamp_to_bounds()

    def _parse(self, raw: Any) -> Any:
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                msg = "Generation output is not valid UTF-8 text"
                raise MalformedGenerationOutput(msg) from exc
        if not isinstance(raw, str):
            return raw
        if not raw.strip():
            raise EmptyOutput("Generation output is empty")
        text = extract_fenced_block(raw)
        if not text:
            raise EmptyOutput("Generation output contains an empty fenced block")
        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError as exc:
            msg = f"Generation output is not valid JSON: {exc}"
            raise MalformedGenerationOutput(msg, raw_text=raw) from exc

    def _scene_payload(self, parsed: Any) -> Payload:
        if isinstance(parsed, Mapping) and isinstance(parsed.get(ENVELOPE_KEY), Mapping):
            parsed = parsed[ENVELOPE_KEY]
        if not isinstance(parsed, Mapping):
            msg = f"Expected a scene object, got {type(parsed).__name__}"
            raise EmptyOutput(msg)
        if not SCENE_KEYS.intersection(parsed.keys()):
            raise EmptyOutput("Generation output has no scene fields")
        return dict(parsed)

    def _collect_players(self, payload: Payload, scene: SceneModel) -> None:
        seen: Set[str] = set()
        for item in self._items(payload, "players"):
            team = item.get("team")
            if team not in TEAMS:
                logger.debug("Player team %r replaced with %r", team, UNKNOWN_TEAM_DEFAULT)
                team = UNKNOWN_TEAM_DEFAULT
            scene.players.append(
                Player(
                    id=self._entity_id(item, "player", scene, seen),
                    x=self._number(item.get("x")),
                    y=self._number(item.get("y")),
                    team=team,
                    label=self._text(item.get("label")),
                    has_ball=self._flag(item.get("hasBall")),
                )
            )

    def _collect_arrows(self, payload: Payload, scene: SceneModel) -> None:
        seen: Set[str] = set()
        for item in self._items(payload, "arrows"):
            arrow_type = item.get("type")
            if arrow_type not in ARROW_TYPES:
                logger.debug("Arrow type %r replaced with %r", arrow_type, ARROW_TYPE_DEFAULT)
                arrow_type = ARROW_TYPE_DEFAULT
            scene.arrows.append(
                Arrow(
                    id=self._entity_id(item, "arrow", scene, seen),
                    from_x=self._number(item.get("fromX")),
                    from_y=self._number(item.get("fromY")),
                    to_x=self._number(item.get("toX")),
                    to_y=self._number(item.get("toY")),
                    type=arrow_type,
                    label=self._text(item.get("label")),
                )
            )

    def _collect_markers(self, payload: Payload, scene: SceneModel) -> None:
        seen: Set[str] = set()
        for item in self._items(payload, "markers"):
            scene.markers.append(
                Marker(
                    id=self._entity_id(item, "marker", scene, seen),
                    x=self._number(item.get("x")),
                    y=self._number(item.get("y")),
                    type=self._marker_type(item.get("type")),
                )
            )

    def _collect_dimension_labels(self, payload: Payload, scene: SceneModel) -> None:
        seen: Set[str] = set()
        for item in self._items(payload, "dimensionLabels"):
            position = item.get("position")
            if position not in ORIENTATIONS:
                position = ORIENTATION_DEFAULT
            scene.dimension_labels.append(
                DimensionLabel(
                    id=self._entity_id(item, "dimension_label", scene, seen),
                    x1=self._number(item.get("x1")),
                    y1=self._number(item.get("y1")),
                    x2=self._number(item.get("x2")),
                    y2=self._number(item.get("y2")),
                    label=self._text(item.get("label")) or "",
                    position=position,
                )
            )

    def _items(self, payload: Payload, key: str) -> List[Mapping[str, Any]]:
        value = payload.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.debug("Scene field %s is %s, treated as empty", key, type(value).__name__)
            return []
        items = [item for item in value if isinstance(item, Mapping)]
        if len(items) != len(value):
            logger.debug("Skipped %d non-object entries in %s", len(value) - len(items), key)
        return items

    def _entity_id(
        self,
        item: Mapping[str, Any],
        kind: str,
        scene: SceneModel,
        seen: Set[str],
    ) -> str:
        raw_id = item.get("id")
        if isinstance(raw_id, (int, float)) and not isinstance(raw_id, bool):
            try:
                raw_id = str(raw_id)
            except ValueError:
                # beyond the interpreter's int-to-str digit limit
                raw_id = None
        if isinstance(raw_id, str):
            raw_id = raw_id.strip()
        if not isinstance(raw_id, str) or not raw_id or raw_id in seen:
            raw_id = scene.new_entity_id(kind)
        seen.add(raw_id)
        scene.reserve_entity_id(kind, raw_id)
        return raw_id

    def _float(self, value: Any) -> Optional[float]:
        """Read a number or numeric string; infinities survive, NaN does not."""
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            try:
                return float(value)
            except OverflowError:
                return math.copysign(math.inf, value)
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return None
        if isinstance(value, float) and not math.isnan(value):
            return value
        return None

    def _number(self, value: Any, default: float = CENTER) -> float:
        number = self._float(value)
        if number is None:
            return default
        return clamp_percent(number) if math.isinf(number) else number

    def _positive(self, value: Any, default: float) -> float:
        number = self._float(value)
        if number is None or not math.isfinite(number) or number <= 0:
            return default
        return number

    def _text(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, (bool, dict, list)):
            return None
        text = str(value)
        return text or None

    def _flag(self, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return value is True

    def _marker_type(self, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            return MARKER_TYPE_DEFAULT
        marker_type = value.strip()
        return MARKER_TYPE_ALIASES.get(marker_type, marker_type)


def normalize(raw: Any) -> SceneModel:
    return GenerationOutputNormalizer().convert(raw)
