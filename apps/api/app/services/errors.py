"""Exceptions shared by the team type and custom field services."""

from typing import Any


class CustomFieldServiceError(Exception):
    """Base exception for team type / custom field service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CustomFieldServiceError):
    """
    Caller input failed a constraint.

    errors maps a field key (definition id or attribute name) to the list of
    issues raised for it, ready to render next to the matching input.
    """

    def __init__(self, message: str, errors: dict[str, list[dict[str, Any]]] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class NotFoundError(CustomFieldServiceError):
    """Referenced type, field definition or template does not exist for the team."""

    pass


class DependencyError(CustomFieldServiceError):
    """Deletion blocked by existing usage."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
