"""
FastAPI routes and HTTP plumbing.

- routes.py: POST/OPTIONS /probe, GET /cooldown, GET /health
- dependencies.py: Settings singleton, per-request orchestrator and repository
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
- middleware.py: Request tracing and shared CORS headers
"""

from grounded_probe.api import dependencies, error_handlers, models
from grounded_probe.api.routes import router

__all__ = [
    "router",
    "dependencies",
    "error_handlers",
    "models",
]
