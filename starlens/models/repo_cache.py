"""repo_cache table — full analysis results keyed by ``owner/repo``."""

from sqlalchemy import BigInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from starlens.core.database import Base


class RepoCache(Base):
    __tablename__ = "repo_cache"

    repo_id: Mapped[str] = mapped_column(Text, primary_key=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    # epoch milliseconds
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
