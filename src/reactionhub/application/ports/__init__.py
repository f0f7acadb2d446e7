"""Application ports (interfaces) used by the reaction core."""

from .entity_store_port import EntityStorePort
from .reaction_store_port import ReactionStorePort
from .user_directory_port import UserDirectoryPort

__all__ = [
    "EntityStorePort",
    "ReactionStorePort",
    "UserDirectoryPort",
]
