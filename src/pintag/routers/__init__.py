"""Pintag API routers package."""

from . import auth
from . import admin_users
from . import catalog
from . import images
from . import uploads
from . import dashboard
from . import albums

__all__ = [
    "auth",
    "admin_users",
    "catalog",
    "images",
    "uploads",
    "dashboard",
    "albums",
]
