# backend/src/routers/__init__.py
"""
FastAPI routers
"""

from .venues import router as venues_router
from .flags import router as flags_router
from .moderation import router as moderation_router
from .health import router as health_router

__all__ = [
    'venues_router',
    'flags_router',
    'moderation_router',
    'health_router',
]
