"""API Routes"""

from . import admin_reactions, reactions

__all__ = [
    "admin_reactions",
    "reactions",
]
