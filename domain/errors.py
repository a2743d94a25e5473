from __future__ import annotations


class SceneError(Exception):
    """Base class for errors raised by the diagram core."""


class MalformedGenerationOutput(SceneError):
    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class EmptyOutput(SceneError):
    pass


class EntityNotFound(SceneError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"No {kind} with id {entity_id!r}")
        self.kind = kind
        self.entity_id = entity_id
