"""Storage for project facts and characters."""

from .models import CharacterProfile, Fact
from .repository import InMemoryRepository, Repository, RepositoryError
from .sqlite import SQLiteRepository

__all__ = [
    "CharacterProfile",
    "Fact",
    "InMemoryRepository",
    "Repository",
    "RepositoryError",
    "SQLiteRepository",
]
