"""API routers."""

from app.routers.custom_fields import router as custom_fields_router
from app.routers.entities import router as entities_router
from app.routers.team_types import router as team_types_router
from app.routers.type_templates import router as type_templates_router

__all__ = [
    "custom_fields_router",
    "entities_router",
    "team_types_router",
    "type_templates_router",
]
