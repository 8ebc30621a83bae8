"""FastAPI routers acting as controllers in the MVC architecture."""

from . import analysis, flags, health, lessons, realtime, recording

__all__ = ["analysis", "flags", "health", "lessons", "realtime", "recording"]
