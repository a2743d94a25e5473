from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import ORJSONResponse, Response
from pydantic import BaseModel, Field, ValidationError

from app.config import AppSettings, configure_logging
from domain.errors import EmptyOutput, EntityNotFound, MalformedGenerationOutput
from domain.models import EntityKind, Handle
from domain.services.diagram_session import DiagramSession
from domain.services.interaction_controller import DragTarget, InteractionController
from domain.services.render_scene_svg import SceneSvgRenderer

logger = logging.getLogger(__name__)

SVG_MEDIA_TYPE = "image/svg+xml"


class TargetRef(BaseModel):
    kind: EntityKind
    id: str = Field(..., min_length=1)
    handle: Handle = "body"

    def to_drag_target(self) -> DragTarget:
        return DragTarget(self.kind, self.id, self.handle)


class PointerEvent(BaseModel):
    x: float
    y: float
    target: TargetRef | None = None


class DoubleActivateRequest(BaseModel):
    kind: EntityKind | None = None
    id: str | None = None
    x: float | None = None
    y: float | None = None


class GenerationResult(BaseModel):
    output: str | dict[str, Any]


class EditingToggle(BaseModel):
    enabled: bool


class SessionStore:
    """In-process registry of editing sessions, oldest evicted first."""

    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings
        self._sessions: OrderedDict[str, DiagramSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> tuple[str, DiagramSession]:
        session_id = uuid.uuid4().hex
        session = DiagramSession(
            self.settings.surface.to_coordinate_space(),
            normalizer=self.settings.normalizer.build_normalizer(),
            editing_enabled=self.settings.editor.editing_enabled,
            hit_config=self.settings.editor.to_hit_config(),
        )
        self._sessions[session_id] = session
        while len(self._sessions) > self.settings.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted diagram session %s", evicted)
        return session_id, session

    def get(self, session_id: str) -> DiagramSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


def interaction_payload(controller: InteractionController, changed: bool) -> dict[str, Any]:
    capture = controller.capture
    return {
        "state": controller.state.name,
        "capture": (
            {"kind": capture.kind, "id": capture.entity_id, "handle": capture.handle}
            if capture
            else None
        ),
        "changed": changed,
        "editing_enabled": controller.editing_enabled,
        "scene": controller.scene.to_payload(),
    }


def create_app(settings: AppSettings) -> FastAPI:
    configure_logging(settings)
    app = FastAPI(title=settings.title, default_response_class=ORJSONResponse)
    store = SessionStore(settings)
    app.state.sessions = store

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "sessions": len(store)}

    @app.post("/api/sessions", status_code=201)
    def create_session() -> dict[str, Any]:
        session_id, session = store.create()
        logger.info("Created diagram session %s", session_id)
        return {
            "session_id": session_id,
            "editing_enabled": session.controller.editing_enabled,
            "scene": session.scene.to_payload(),
        }

    @app.delete("/api/sessions/{session_id}", status_code=204)
    def delete_session(session_id: str) -> Response:
        if not store.delete(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        return Response(status_code=204)

    @app.get("/api/sessions/{session_id}/scene")
    def get_scene(session_id: str) -> dict[str, Any]:
        return store.get(session_id).scene.to_payload()

    @app.get("/api/sessions/{session_id}/scene.svg")
    def get_scene_svg(
        session_id: str,
        editing: bool | None = Query(None, description="Draw arrow handles."),
    ) -> Response:
        session = store.get(session_id)
        controller = session.controller
        show_handles = controller.editing_enabled if editing is None else editing
        svg = SceneSvgRenderer(controller.space).render(session.scene, editing=show_handles)
        return Response(content=svg, media_type=SVG_MEDIA_TYPE)

    @app.post("/api/sessions/{session_id}/new")
    def new_diagram(session_id: str) -> dict[str, Any]:
        return store.get(session_id).new_diagram().to_payload()

    @app.post("/api/sessions/{session_id}/generations", status_code=201)
    def begin_generation(session_id: str) -> dict[str, int]:
        return {"ticket": store.get(session_id).begin_generation()}

    @app.put("/api/sessions/{session_id}/generations/{ticket}")
    def apply_generation(session_id: str, ticket: int, body: GenerationResult) -> dict[str, Any]:
        session = store.get(session_id)
        try:
            applied = session.apply_generation(ticket, body.output)
        except (MalformedGenerationOutput, EmptyOutput) as exc:
            logger.warning("Generation %d for session %s rejected: %s", ticket, session_id, exc)
            raise HTTPException(
                status_code=422,
                detail={"error": type(exc).__name__, "message": str(exc)},
            ) from exc
        return {
            "applied": applied,
            "ticket": ticket,
            "latest_ticket": session.latest_ticket,
            "scene": session.scene.to_payload(),
        }

    @app.post("/api/sessions/{session_id}/entities/{kind}", status_code=201)
    def add_entity(
        session_id: str, kind: EntityKind, fields: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        session = store.get(session_id)
        try:
            entity = session.scene.add_entity(kind, fields)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            raise HTTPException(status_code=422, detail=errors) from exc
        return entity.model_dump(by_alias=True, exclude_none=True)

    @app.get("/api/sessions/{session_id}/entities/{kind}/{entity_id}")
    def get_entity(session_id: str, kind: EntityKind, entity_id: str) -> dict[str, Any]:
        session = store.get(session_id)
        try:
            entity = session.scene.get_entity(kind, entity_id)
        except EntityNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return entity.model_dump(by_alias=True, exclude_none=True)

    @app.put("/api/sessions/{session_id}/players/{player_id}/ball")
    def set_ball_carrier(session_id: str, player_id: str) -> dict[str, Any]:
        session = store.get(session_id)
        if not session.scene.set_ball_carrier(player_id):
            raise HTTPException(status_code=404, detail="Player not found")
        return session.scene.to_payload()

    @app.put("/api/sessions/{session_id}/editing")
    def set_editing(session_id: str, body: EditingToggle) -> dict[str, Any]:
        controller = store.get(session_id).controller
        controller.set_editing_enabled(body.enabled)
        return interaction_payload(controller, changed=False)

    @app.post("/api/sessions/{session_id}/pointer/down")
    def pointer_down(session_id: str, event: PointerEvent) -> dict[str, Any]:
        controller = store.get(session_id).controller
        target = event.target.to_drag_target() if event.target else None
        captured = controller.pointer_down(event.x, event.y, target)
        return interaction_payload(controller, changed=captured)

    @app.post("/api/sessions/{session_id}/pointer/move")
    def pointer_move(session_id: str, event: PointerEvent) -> dict[str, Any]:
        controller = store.get(session_id).controller
        changed = controller.pointer_move(event.x, event.y)
        return interaction_payload(controller, changed=changed)

    @app.post("/api/sessions/{session_id}/pointer/{action}")
    def pointer_release(
        session_id: str, action: Literal["up", "leave"]
    ) -> dict[str, Any]:
        controller = store.get(session_id).controller
        if action == "up":
            released = controller.pointer_up()
        else:
            released = controller.pointer_leave()
        return interaction_payload(controller, changed=released)

    @app.post("/api/sessions/{session_id}/double-activate")
    def double_activate(session_id: str, body: DoubleActivateRequest) -> dict[str, Any]:
        controller = store.get(session_id).controller
        if body.kind is not None and body.id is not None:
            removed = controller.double_activate(body.kind, body.id)
        elif body.x is not None and body.y is not None:
            removed = controller.double_activate_at(body.x, body.y)
        else:
            raise HTTPException(status_code=400, detail="Provide kind and id, or x and y")
        return interaction_payload(controller, changed=removed)

    return app
