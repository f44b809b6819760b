"""Settings and the terminal collaborator interfaces."""

from .settings import Settings, get_settings
from .terminal import ChatUpdateBus, CommandStatusStore, PtyBuffer

__all__ = (
    "ChatUpdateBus",
    "CommandStatusStore",
    "PtyBuffer",
    "Settings",
    "get_settings",
)
