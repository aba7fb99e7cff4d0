"""
API routes module.
"""

from listqueue.api.routes.health import router as health_router
from listqueue.api.routes.jobs import router as jobs_router

__all__ = ["jobs_router", "health_router"]
