"""Design catalog: on-disk documents joined with their metadata."""

from .builder import CatalogBuilder
from .models import DesignRecord, Viewport, classify_viewport, design_id, display_status
from .styles import (
    DEFAULT_SUBSTITUTIONS,
    CssSubstitution,
    inline_stylesheets,
    transform_unsupported_css,
)

__all__ = [
    "CatalogBuilder",
    "CssSubstitution",
    "DEFAULT_SUBSTITUTIONS",
    "DesignRecord",
    "Viewport",
    "classify_viewport",
    "design_id",
    "display_status",
    "inline_stylesheets",
    "transform_unsupported_css",
]
