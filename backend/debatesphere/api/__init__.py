"""API module."""

from .auth import router as auth_router
from .topics import router as topics_router
from .sessions import router as sessions_router
from .coach import router as coach_router

__all__ = ['auth_router', 'topics_router', 'sessions_router', 'coach_router']
