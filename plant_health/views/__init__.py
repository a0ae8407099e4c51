"""Surface selection, derived purely from session state."""

from plant_health.views.router import Surface, select_surface

__all__ = ["Surface", "select_surface"]
