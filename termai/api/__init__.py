"""Router registration for the health and AI endpoints."""

from fastapi import FastAPI

from .routes import completions, health

_ROUTERS = (
    health.router,
    completions.router,
)


def register_routers(app: FastAPI) -> None:
    for router in _ROUTERS:
        app.include_router(router)


__all__ = ("register_routers",)
