"""Terminal AI completion dispatcher and its FastAPI surface."""

from .main import app, create_application

__all__ = ("app", "create_application")
