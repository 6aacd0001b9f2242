"""
Repository Pattern for Database Access

Provides a clean abstraction layer over MongoDB collections,
centralizing database operations and reducing code duplication.
"""

from app.repositories.teams import TeamRepository
from app.repositories.user_profiles import UserProfileRepository

__all__ = [
    "TeamRepository",
    "UserProfileRepository",
]
