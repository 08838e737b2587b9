"""API routers."""

from app.api import auth, chat, models

__all__ = [
    "auth",
    "chat",
    "models",
]
