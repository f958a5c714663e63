"""API routers."""

from meowchi.api.auth import router as auth_router
from meowchi.api.meow import router as meow_router
from meowchi.api.streak import router as streak_router

__all__ = [
    "auth_router",
    "meow_router",
    "streak_router",
]
