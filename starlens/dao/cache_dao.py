"""Cache DAOs — repo_cache and user_cache table operations."""

from starlens.dao.base import BaseDAO
from starlens.models.repo_cache import RepoCache
from starlens.models.user_cache import UserCache


class RepoCacheDAO(BaseDAO[RepoCache]):
    model = RepoCache
    key_column = "repo_id"


class UserCacheDAO(BaseDAO[UserCache]):
    model = UserCache
    key_column = "login"
