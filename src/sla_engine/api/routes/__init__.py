"""Route group exports."""

from . import health, routes, sla

__all__ = ["health", "routes", "sla"]
