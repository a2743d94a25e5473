from __future__ import annotations

import pytest

from domain.coordinates import CoordinateSpace
from domain.errors import MalformedGenerationOutput
from domain.models import SceneModel
from domain.services.diagram_session import DiagramSession
from domain.services.normalize_generation_output import GenerationOutputNormalizer
from tests.helpers.scene_fixtures import SAMPLE_RESPONSE_TEXT, sample_payload


def test_new_session_starts_with_blank_scene(space: CoordinateSpace) -> None:
    normalizer = GenerationOutputNormalizer(default_court_width=30, default_court_height=20)
    session = DiagramSession(space, normalizer=normalizer)

    assert session.scene.is_empty()
    assert (session.scene.court_width, session.scene.court_height) == (30, 20)
    assert session.controller.scene is session.scene


def test_generation_result_replaces_scene_wholesale(space: CoordinateSpace) -> None:
    session = DiagramSession(space)
    session.scene.add_entity("marker")
    ticket = session.begin_generation()

    assert session.apply_generation(ticket, SAMPLE_RESPONSE_TEXT)

    assert [player.id for player in session.scene.players] == ["player1"]
    assert session.scene.markers == []


def test_stale_generation_is_discarded(space: CoordinateSpace) -> None:
    session = DiagramSession(space)
    first = session.begin_generation()
    second = session.begin_generation()

    assert session.apply_generation(second, sample_payload())
    current = session.scene
    assert session.apply_generation(first, SAMPLE_RESPONSE_TEXT) is False

    assert session.scene is current
    assert len(session.scene.markers) == 3


def test_stale_generation_is_not_parsed(space: CoordinateSpace) -> None:
    session = DiagramSession(space)
    stale = session.begin_generation()
    session.begin_generation()

    assert session.apply_generation(stale, "not json at all") is False


def test_failed_generation_keeps_previous_scene(space: CoordinateSpace) -> None:
    session = DiagramSession(space)
    session.apply_generation(session.begin_generation(), sample_payload())
    current = session.scene
    ticket = session.begin_generation()

    with pytest.raises(MalformedGenerationOutput):
        session.apply_generation(ticket, "not json at all")

    assert session.scene is current


def test_new_diagram_supersedes_pending_generation(space: CoordinateSpace) -> None:
    session = DiagramSession(space)
    pending = session.begin_generation()

    session.new_diagram()

    assert session.apply_generation(pending, sample_payload()) is False
    assert session.scene.is_empty()


def test_replacement_releases_drag_and_notifies(space: CoordinateSpace) -> None:
    seen: list[SceneModel] = []
    session = DiagramSession(space, on_change=seen.append)
    session.apply_generation(session.begin_generation(), sample_payload())
    point = space.to_surface(50, 35)
    assert session.controller.pointer_down(point.x, point.y)

    session.apply_generation(session.begin_generation(), SAMPLE_RESPONSE_TEXT)

    assert not session.controller.is_dragging
    assert seen[-1] is session.scene
    assert len(seen) == 2
