"""Structured logging helpers (value-safe: ids only, never field values)."""

import logging
from typing import Any
from uuid import UUID

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Install the default root handler if nothing else configured logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def build_log_context(
    *,
    team_id: UUID | str | None = None,
    type_id: UUID | str | None = None,
    field_id: UUID | str | None = None,
    entity_kind: str | None = None,
    entity_id: UUID | str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict for ``extra=``."""
    context: dict[str, Any] = {}
    if team_id:
        context["team_id"] = str(team_id)
    if type_id:
        context["type_id"] = str(type_id)
    if field_id:
        context["field_id"] = str(field_id)
    if entity_kind:
        context["entity_kind"] = str(entity_kind)
    if entity_id:
        context["entity_id"] = str(entity_id)
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
