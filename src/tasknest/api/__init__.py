"""HTTP API for TaskNest."""

from tasknest.api.routes import router

__all__ = ["router"]
