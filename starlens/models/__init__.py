"""SQLAlchemy ORM models — one file per table."""

from starlens.models.repo_cache import RepoCache
from starlens.models.user_cache import UserCache

__all__ = [
    "RepoCache",
    "UserCache",
]
