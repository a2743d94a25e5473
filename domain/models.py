from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from domain.errors import EntityNotFound

PERCENT_MIN = 0.0
PERCENT_MAX = 100.0
CENTER = 50.0
DEFAULT_COURT_SIZE = 100.0

Team = Literal["attack", "defense", "freeman", "neutral"]
ArrowType = Literal["move", "pass", "dribble"]
Orientation = Literal["horizontal", "vertical"]
EntityKind = Literal["player", "arrow", "marker", "dimension_label"]
Handle = Literal["body", "start", "end"]

TEAMS: Tuple[str, ...] = ("attack", "defense", "freeman", "neutral")
ARROW_TYPES: Tuple[str, ...] = ("move", "pass", "dribble")
ORIENTATIONS: Tuple[str, ...] = ("horizontal", "vertical")
ENTITY_KINDS: Tuple[str, ...] = ("player", "arrow", "marker", "dimension_label")

TEAM_DEFAULT = "attack"
ARROW_TYPE_DEFAULT = "move"
MARKER_TYPE_DEFAULT = "cone"
ORIENTATION_DEFAULT = "horizontal"

# Marker kinds are an open set; these are the ones with a dedicated glyph.
MARKER_TYPES: Tuple[str, ...] = ("cone", "flatMarker", "soccerMarker", "miniGoal")
MARKER_TYPE_ALIASES: Dict[str, str] = {
    "roundMarker": "soccerMarker",
    "marker": "soccerMarker",
    "goal": "miniGoal",
}

TEAM_COLORS: Dict[str, str] = {
    "attack": "#f97316",
    "defense": "#3b82f6",
    "freeman": "#eab308",
    "neutral": "#22c55e",
}

ARROW_COLORS: Dict[str, str] = {
    "move": "#6b7280",
    "pass": "#3b82f6",
    "dribble": "#22c55e",
}

COLLECTION_ATTRS: Dict[str, str] = {
    "player": "players",
    "arrow": "arrows",
    "marker": "markers",
    "dimension_label": "dimension_labels",
}

ID_PREFIXES: Dict[str, str] = {
    "player": "player",
    "arrow": "arrow",
    "marker": "marker",
    "dimension_label": "dim",
}

# Positional attribute pairs per entity kind and draggable handle.
POSITION_FIELDS: Dict[str, Dict[str, Tuple[str, str]]] = {
    "player": {"body": ("x", "y")},
    "marker": {"body": ("x", "y")},
    "arrow": {"start": ("from_x", "from_y"), "end": ("to_x", "to_y")},
    "dimension_label": {"start": ("x1", "y1"), "end": ("x2", "y2")},
}


def clamp_percent(value: float) -> float:
    return min(PERCENT_MAX, max(PERCENT_MIN, value))


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


class SceneEntity(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    id: str = Field(..., min_length=1)


class Player(SceneEntity):
    x: float = CENTER
    y: float = CENTER
    team: Team = TEAM_DEFAULT
    label: Optional[str] = None
    has_ball: bool = Field(False, alias="hasBall")


class Arrow(SceneEntity):
    from_x: float = Field(CENTER, alias="fromX")
    from_y: float = Field(CENTER, alias="fromY")
    to_x: float = Field(CENTER, alias="toX")
    to_y: float = Field(CENTER, alias="toY")
    type: ArrowType = ARROW_TYPE_DEFAULT
    label: Optional[str] = None


class Marker(SceneEntity):
    x: float = CENTER
    y: float = CENTER
    type: str = MARKER_TYPE_DEFAULT

    def has_known_type(self) -> bool:
        return self.type in MARKER_TYPES


class DimensionLabel(SceneEntity):
    x1: float = CENTER
    y1: float = CENTER
    x2: float = CENTER
    y2: float = CENTER
    label: str = ""
    position: Orientation = ORIENTATION_DEFAULT


Entity = Union[Player, Arrow, Marker, DimensionLabel]

ENTITY_MODELS: Dict[str, type[SceneEntity]] = {
    "player": Player,
    "arrow": Arrow,
    "marker": Marker,
    "dimension_label": DimensionLabel,
}


def _ensure_unique_ids(entities: List[Any], kind: str) -> None:
    seen: Set[str] = set()
    for entity in entities:
        if entity.id in seen:
            msg = f"Duplicate {kind} id found: {entity.id}"
            raise ValueError(msg)
        seen.add(entity.id)


def _clamp_entity(kind: str, entity: Any) -> None:
    for x_attr, y_attr in POSITION_FIELDS[kind].values():
        setattr(entity, x_attr, clamp_percent(getattr(entity, x_attr)))
        setattr(entity, y_attr, clamp_percent(getattr(entity, y_attr)))


class SceneModel(BaseModel):
    """In-memory tactical diagram.

    Positions live in the 0..100 percentage space. The court size is only a
    nominal annotation and never takes part in coordinate math.
    """

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    court_width: float = Field(DEFAULT_COURT_SIZE, gt=0, alias="courtWidth")
    court_height: float = Field(DEFAULT_COURT_SIZE, gt=0, alias="courtHeight")
    players: List[Player] = Field(default_factory=list)
    arrows: List[Arrow] = Field(default_factory=list)
    markers: List[Marker] = Field(default_factory=list)
    dimension_labels: List[DimensionLabel] = Field(
        default_factory=list, alias="dimensionLabels"
    )

    _issued_ids: Set[str] = PrivateAttr(default_factory=set)

    @field_validator("players", "arrows", "markers", "dimension_labels", mode="after")
    @classmethod
    def ensure_unique_entity_ids(cls, entities: List[Any]) -> List[Any]:
        kind = type(entities[0]).__name__ if entities else "entity"
        _ensure_unique_ids(entities, kind)
        return entities

    def model_post_init(self, __context: Any) -> None:
        for kind in ENTITY_KINDS:
            self._issued_ids.update(f"{kind}:{entity.id}" for entity in self.entities(kind))

    def entities(self, kind: str) -> List[Any]:
        try:
            attr = COLLECTION_ATTRS[kind]
        except KeyError as exc:
            msg = f"Unknown entity kind: {kind}"
            raise ValueError(msg) from exc
        return getattr(self, attr)

    def entity_count(self) -> int:
        return sum(len(self.entities(kind)) for kind in ENTITY_KINDS)

    def is_empty(self) -> bool:
        return self.entity_count() == 0

    def find_entity(self, kind: str, entity_id: str) -> Optional[Any]:
        for entity in self.entities(kind):
            if entity.id == entity_id:
                return entity
        return None

    def get_entity(self, kind: str, entity_id: str) -> Any:
        entity = self.find_entity(kind, entity_id)
        if entity is None:
            raise EntityNotFound(kind, entity_id)
        return entity

    def new_entity_id(self, kind: str) -> str:
        prefix = ID_PREFIXES[kind]
        existing = {entity.id for entity in self.entities(kind)}
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:8]}"
            key = f"{kind}:{candidate}"
            if candidate in existing or key in self._issued_ids:
                continue
            self._issued_ids.add(key)
            return candidate

    def reserve_entity_id(self, kind: str, entity_id: str) -> None:
        self._issued_ids.add(f"{kind}:{entity_id}")

    def add_entity(self, kind: str, fields: Optional[Dict[str, Any]] = None) -> Any:
        model = ENTITY_MODELS.get(kind)
        if model is None:
            msg = f"Unknown entity kind: {kind}"
            raise ValueError(msg)
        values = {key: value for key, value in (fields or {}).items() if key != "id"}
        values["id"] = self.new_entity_id(kind)
        entity = model.model_validate(values)
        _clamp_entity(kind, entity)
        self.entities(kind).append(entity)
        return entity

    def update_position(
        self,
        kind: str,
        entity_id: str,
        x: float,
        y: float,
        *,
        endpoint: Optional[str] = None,
    ) -> bool:
        handle = endpoint or "body"
        fields = POSITION_FIELDS.get(kind, {}).get(handle)
        if fields is None:
            msg = f"{kind} has no movable handle {handle!r}"
            raise ValueError(msg)
        entity = self.find_entity(kind, entity_id)
        if entity is None:
            return False
        x_attr, y_attr = fields
        setattr(entity, x_attr, float(x))
        setattr(entity, y_attr, float(y))
        return True

    def remove_entity(self, kind: str, entity_id: str) -> bool:
        collection = self.entities(kind)
        for index, entity in enumerate(collection):
            if entity.id == entity_id:
                del collection[index]
                return True
        return False

    def clamp_to_bounds(self) -> SceneModel:
        for kind in POSITION_FIELDS:
            for entity in self.entities(kind):
                _clamp_entity(kind, entity)
        return self

    def set_ball_carrier(self, player_id: str) -> bool:
        if self.find_entity("player", player_id) is None:
            return False
        for player in self.players:
            player.has_ball = player.id == player_id
        return True

    def ball_carriers(self) -> List[Player]:
        return [player for player in self.players if player.has_ball]

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
