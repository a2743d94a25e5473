from __future__ import annotations

import xml.etree.ElementTree as ET

from domain.coordinates import CoordinateSpace
from domain.models import SceneModel, TEAM_COLORS
from domain.services.render_scene_svg import SVG_NS, SceneSvgRenderer

NS = {"svg": SVG_NS}


def _parse(svg: str) -> ET.Element:
    return ET.fromstring(svg)


def _groups(root: ET.Element, kind: str) -> list[ET.Element]:
    return [
        element
        for element in root.iter(f"{{{SVG_NS}}}g")
        if element.get("data-kind") == kind
    ]


def test_one_glyph_group_per_entity(space: CoordinateSpace, sample_scene: SceneModel) -> None:
    root = _parse(SceneSvgRenderer(space).render(sample_scene))

    assert [group.get("data-id") for group in _groups(root, "player")] == ["p1", "p2"]
    assert [group.get("data-id") for group in _groups(root, "arrow")] == ["a1"]
    assert [group.get("data-id") for group in _groups(root, "marker")] == ["m1", "m2", "m3"]
    assert [group.get("data-id") for group in _groups(root, "dimension_label")] == ["dim-w"]


def test_player_glyph_position_and_team_color(
    space: CoordinateSpace, sample_scene: SceneModel
) -> None:
    root = _parse(SceneSvgRenderer(space).render(sample_scene))

    circle = _groups(root, "player")[1].find("svg:circle", NS)
    assert circle is not None
    assert float(circle.get("cx", "0")) == 200
    assert float(circle.get("cy", "0")) == 146
    assert circle.get("fill") == TEAM_COLORS["defense"]


def test_ball_indicator_only_for_carrier(space: CoordinateSpace, sample_scene: SceneModel) -> None:
    root = _parse(SceneSvgRenderer(space).render(sample_scene))

    circles = root.iter(f"{{{SVG_NS}}}circle")
    balls = [element for element in circles if element.get("class") == "ball"]
    assert len(balls) == 1


def test_handles_drawn_only_while_editing(space: CoordinateSpace, sample_scene: SceneModel) -> None:
    renderer = SceneSvgRenderer(space)

    viewing = _parse(renderer.render(sample_scene))
    editing = _parse(renderer.render(sample_scene, editing=True))

    def handles(root: ET.Element) -> list[str | None]:
        return [
            element.get("data-handle")
            for element in root.iter(f"{{{SVG_NS}}}circle")
            if element.get("class") == "handle"
        ]

    assert handles(viewing) == []
    assert handles(editing) == ["start", "end"]


def test_court_size_annotation(space: CoordinateSpace, sample_scene: SceneModel) -> None:
    root = _parse(SceneSvgRenderer(space).render(sample_scene))

    annotation = next(
        element
        for element in root.iter(f"{{{SVG_NS}}}text")
        if element.get("class") == "court-size"
    )
    assert annotation.text == "10m × 6m"


def test_unknown_marker_uses_fallback_glyph(space: CoordinateSpace) -> None:
    scene = SceneModel.model_validate({"markers": [{"id": "x", "type": "ladder"}]})

    root = _parse(SceneSvgRenderer(space).render(scene))

    group = _groups(root, "marker")[0]
    assert group.get("data-type") == "ladder"
    assert group.find("svg:line", NS) is not None
    assert group.find("svg:polygon", NS) is not None


def test_empty_scene_renders_court_only(space: CoordinateSpace) -> None:
    root = _parse(SceneSvgRenderer(space).render(SceneModel()))

    rects = root.iter(f"{{{SVG_NS}}}rect")
    court = next(element for element in rects if element.get("class") == "court")
    assert float(court.get("x", "0")) == 20
    assert float(court.get("width", "0")) == 360
    assert _groups(root, "player") == []
