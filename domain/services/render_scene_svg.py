from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict

from domain.coordinates import CoordinateSpace
from domain.models import (
    ARROW_COLORS,
    TEAM_COLORS,
    Arrow,
    DimensionLabel,
    Marker,
    Player,
    SceneModel,
)

SVG_NS = "http://www.w3.org/2000/svg"
COURT_FILL = "#dcfce7"
COURT_STROKE = "#1f2937"
LABEL_COLOR = "#6b7280"
HANDLE_FILL = "#ffffff"
HANDLE_STROKE = "#111827"
DIMENSION_COLOR = "#374151"

ARROW_DASHES: Dict[str, str] = {"pass": "5,5", "dribble": "2,2"}


@dataclass(frozen=True)
class GlyphConfig:
    player_radius: float = 18.0
    ball_radius: float = 8.0
    marker_size: float = 8.0
    handle_radius: float = 6.0
    cap_length: float = 6.0
    show_labels: bool = True


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _fmt_size(value: float) -> str:
    return _fmt(value) if value != int(value) else str(int(value))


class SceneSvgRenderer:
    """Draws a SceneModel as a standalone SVG court graphic.

    Paint order is court, dimension labels, markers, arrows, players, then the
    arrow endpoint handles while editing, which is the stacking order the
    interaction controller hit-tests against.
    """

    def __init__(self, space: CoordinateSpace, glyphs: GlyphConfig | None = None) -> None:
        self.space = space
        self.glyphs = glyphs or GlyphConfig()

    def render(self, scene: SceneModel, *, editing: bool = False) -> str:
        root = ET.Element(
            "svg",
            {
                "xmlns": SVG_NS,
                "width": _fmt(self.space.width),
                "height": _fmt(self.space.height),
                "viewBox": f"0 0 {_fmt(self.space.width)} {_fmt(self.space.height)}",
            },
        )
        self._build_defs(root)
        self._build_court(root, scene)
        for label in scene.dimension_labels:
            self._build_dimension_label(root, label)
        for marker in scene.markers:
            self._build_marker(root, marker)
        for arrow in scene.arrows:
            self._build_arrow(root, arrow)
        for player in scene.players:
            self._build_player(root, player)
        if editing:
            for arrow in scene.arrows:
                self._build_arrow_handles(root, arrow)
        return ET.tostring(root, encoding="unicode")

    def _build_defs(self, root: ET.Element) -> None:
        defs = ET.SubElement(root, "defs")
        for arrow_type, color in ARROW_COLORS.items():
            marker = ET.SubElement(
                defs,
                "marker",
                {
                    "id": f"arrowhead-{arrow_type}",
                    "markerWidth": "10",
                    "markerHeight": "7",
                    "refX": "9",
                    "refY": "3.5",
                    "orient": "auto",
                },
            )
            ET.SubElement(marker, "polygon", {"points": "0 0, 10 3.5, 0 7", "fill": color})

    def _build_court(self, root: ET.Element, scene: SceneModel) -> None:
        origin = self.space.inset_origin()
        size = self.space.inset_size()
        ET.SubElement(
            root,
            "rect",
            {
                "class": "court",
                "x": _fmt(origin.x),
                "y": _fmt(origin.y),
                "width": _fmt(size.width),
                "height": _fmt(size.height),
                "fill": COURT_FILL,
                "stroke": COURT_STROKE,
                "stroke-width": "2",
            },
        )
        annotation = ET.SubElement(
            root,
            "text",
            {
                "class": "court-size",
                "x": _fmt(self.space.width - 10),
                "y": "20",
                "text-anchor": "end",
                "fill": LABEL_COLOR,
                "font-size": "10",
            },
        )
        annotation.text = (
            f"{_fmt_size(scene.court_width)}m × {_fmt_size(scene.court_height)}m"
        )

    def _entity_group(self, root: ET.Element, kind: str, entity_id: str) -> ET.Element:
        return ET.SubElement(root, "g", {"data-kind": kind, "data-id": entity_id})

    def _build_player(self, root: ET.Element, player: Player) -> None:
        center = self.space.to_surface(player.x, player.y)
        radius = self.glyphs.player_radius
        group = self._entity_group(root, "player", player.id)
        ET.SubElement(
            group,
            "circle",
            {
                "cx": _fmt(center.x),
                "cy": _fmt(center.y),
                "r": _fmt(radius),
                "fill": TEAM_COLORS.get(player.team, TEAM_COLORS["neutral"]),
                "stroke": "white",
                "stroke-width": "2",
            },
        )
        if self.glyphs.show_labels and player.label:
            text = ET.SubElement(
                group,
                "text",
                {
                    "x": _fmt(center.x),
                    "y": _fmt(center.y + 5),
                    "text-anchor": "middle",
                    "fill": "white",
                    "font-size": "14",
                    "font-weight": "bold",
                },
            )
            text.text = player.label
        if player.has_ball:
            offset = radius * 0.78
            ET.SubElement(
                group,
                "circle",
                {
                    "class": "ball",
                    "cx": _fmt(center.x + offset),
                    "cy": _fmt(center.y - offset),
                    "r": _fmt(self.glyphs.ball_radius),
                    "fill": "white",
                    "stroke": COURT_STROKE,
                    "stroke-width": "1",
                },
            )

    def _build_arrow(self, root: ET.Element, arrow: Arrow) -> None:
        start = self.space.to_surface(arrow.from_x, arrow.from_y)
        end = self.space.to_surface(arrow.to_x, arrow.to_y)
        attrs = {
            "x1": _fmt(start.x),
            "y1": _fmt(start.y),
            "x2": _fmt(end.x),
            "y2": _fmt(end.y),
            "stroke": ARROW_COLORS[arrow.type],
            "stroke-width": "2",
            "marker-end": f"url(#arrowhead-{arrow.type})",
        }
        dash = ARROW_DASHES.get(arrow.type)
        if dash:
            attrs["stroke-dasharray"] = dash
        group = self._entity_group(root, "arrow", arrow.id)
        ET.SubElement(group, "line", attrs)
        if self.glyphs.show_labels and arrow.label:
            text = ET.SubElement(
                group,
                "text",
                {
                    "x": _fmt((start.x + end.x) / 2),
                    "y": _fmt((start.y + end.y) / 2 - 6),
                    "text-anchor": "middle",
                    "fill": ARROW_COLORS[arrow.type],
                    "font-size": "11",
                },
            )
            text.text = arrow.label

    def _build_arrow_handles(self, root: ET.Element, arrow: Arrow) -> None:
        endpoints = {
            "start": self.space.to_surface(arrow.from_x, arrow.from_y),
            "end": self.space.to_surface(arrow.to_x, arrow.to_y),
        }
        for handle, point in endpoints.items():
            ET.SubElement(
                root,
                "circle",
                {
                    "class": "handle",
                    "data-kind": "arrow",
                    "data-id": arrow.id,
                    "data-handle": handle,
                    "cx": _fmt(point.x),
                    "cy": _fmt(point.y),
                    "r": _fmt(self.glyphs.handle_radius),
                    "fill": HANDLE_FILL,
                    "stroke": HANDLE_STROKE,
                    "stroke-width": "1.5",
                },
            )

    def _build_marker(self, root: ET.Element, marker: Marker) -> None:
        center = self.space.to_surface(marker.x, marker.y)
        x, y = center.x, center.y
        size = self.glyphs.marker_size
        group = self._entity_group(root, "marker", marker.id)
        group.set("data-type", marker.type)
        if marker.type == "cone":
            ET.SubElement(
                group,
                "polygon",
                {
                    "points": (
                        f"{_fmt(x)},{_fmt(y - size * 1.5)} "
                        f"{_fmt(x - size)},{_fmt(y + size * 0.75)} "
                        f"{_fmt(x + size)},{_fmt(y + size * 0.75)}"
                    ),
                    "fill": "#ef4444",
                    "stroke": "#b91c1c",
                    "stroke-width": "1",
                },
            )
        elif marker.type == "flatMarker":
            ET.SubElement(
                group,
                "ellipse",
                {
                    "cx": _fmt(x),
                    "cy": _fmt(y),
                    "rx": _fmt(size),
                    "ry": _fmt(size / 2),
                    "fill": "#fbbf24",
                    "stroke": "#d97706",
                    "stroke-width": "1",
                },
            )
        elif marker.type == "soccerMarker":
            ET.SubElement(
                group,
                "circle",
                {
                    "cx": _fmt(x),
                    "cy": _fmt(y),
                    "r": _fmt(size * 0.75),
                    "fill": "#3b82f6",
                    "stroke": "#1d4ed8",
                    "stroke-width": "1",
                },
            )
        elif marker.type == "miniGoal":
            ET.SubElement(
                group,
                "rect",
                {
                    "x": _fmt(x - size * 2),
                    "y": _fmt(y - size * 0.6),
                    "width": _fmt(size * 4),
                    "height": _fmt(size * 1.2),
                    "fill": "white",
                    "stroke": COURT_STROKE,
                    "stroke-width": "2",
                },
            )
        else:
            # Unknown kinds fall back to a flag.
            ET.SubElement(
                group,
                "line",
                {
                    "x1": _fmt(x),
                    "y1": _fmt(y),
                    "x2": _fmt(x),
                    "y2": _fmt(y - size * 2),
                    "stroke": COURT_STROKE,
                    "stroke-width": "2",
                },
            )
            ET.SubElement(
                group,
                "polygon",
                {
                    "points": (
                        f"{_fmt(x)},{_fmt(y - size * 2)} "
                        f"{_fmt(x + size * 1.25)},{_fmt(y - size * 1.25)} "
                        f"{_fmt(x)},{_fmt(y - size * 0.6)}"
                    ),
                    "fill": "#ef4444",
                },
            )

    def _build_dimension_label(self, root: ET.Element, label: DimensionLabel) -> None:
        start = self.space.to_surface(label.x1, label.y1)
        end = self.space.to_surface(label.x2, label.y2)
        cap = self.glyphs.cap_length
        group = self._entity_group(root, "dimension_label", label.id)
        line_attrs = {"stroke": DIMENSION_COLOR, "stroke-width": "1"}
        ET.SubElement(
            group,
            "line",
            {
                "x1": _fmt(start.x),
                "y1": _fmt(start.y),
                "x2": _fmt(end.x),
                "y2": _fmt(end.y),
                **line_attrs,
            },
        )
        for point in (start, end):
            if label.position == "horizontal":
                cap_attrs = {
                    "x1": _fmt(point.x),
                    "y1": _fmt(point.y - cap),
                    "x2": _fmt(point.x),
                    "y2": _fmt(point.y + cap),
                }
            else:
                cap_attrs = {
                    "x1": _fmt(point.x - cap),
                    "y1": _fmt(point.y),
                    "x2": _fmt(point.x + cap),
                    "y2": _fmt(point.y),
                }
            ET.SubElement(group, "line", {**cap_attrs, **line_attrs})
        if not label.label:
            return
        mid_x = (start.x + end.x) / 2
        mid_y = (start.y + end.y) / 2
        text_attrs = {
            "fill": DIMENSION_COLOR,
            "font-size": "11",
            "text-anchor": "middle",
        }
        if label.position == "horizontal":
            text_attrs.update({"x": _fmt(mid_x), "y": _fmt(mid_y - cap - 2)})
        else:
            text_attrs.update(
                {
                    "x": _fmt(mid_x + cap + 2),
                    "y": _fmt(mid_y),
                    "text-anchor": "start",
                    "dominant-baseline": "middle",
                }
            )
        text = ET.SubElement(group, "text", text_attrs)
        text.text = label.label
