"""FastAPI routers acting as controllers in the MVC architecture."""

from . import dj

__all__ = ["dj"]
