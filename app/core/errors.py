from __future__ import annotations


class EngineError(Exception):
    """Base class for errors surfaced by the invoicing core."""

    code = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(EngineError):
    """A required field is missing or violates a business rule."""

    code = "validation_error"

    def __init__(self, field: str, message: str, rule: str | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.rule = rule or "invalid"

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["field"] = self.field
        payload["rule"] = self.rule
        return payload


class ConflictError(EngineError):
    code = "conflict"


class NotFoundError(EngineError):
    code = "not_found"


class CollaboratorError(EngineError):
    """An external collaborator (carrier API, persistence, report store) failed."""

    code = "collaborator_error"

    def __init__(self, collaborator: str, message: str) -> None:
        super().__init__(message)
        self.collaborator = collaborator

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["collaborator"] = self.collaborator
        return payload
