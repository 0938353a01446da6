"""Persistence interfaces for contacts, groups and tags."""

from src.repositories.base import (
    ContactRepository,
    GroupRepository,
    TagRepository,
    UnitOfWork,
)

__all__ = ["ContactRepository", "GroupRepository", "TagRepository", "UnitOfWork"]
