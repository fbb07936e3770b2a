"""user_cache table — enriched influencer profiles keyed by login."""

from sqlalchemy import BigInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from starlens.core.database import Base


class UserCache(Base):
    __tablename__ = "user_cache"

    login: Mapped[str] = mapped_column(Text, primary_key=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
