"""SQLAlchemy ORM model for the users table.

Table is created by Alembic migration: alembic/versions/001_create_users.py
Deleted users keep their row; ``deleted_at`` is the tombstone.
"""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.hm_common.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str | None] = mapped_column(String(100))
    updated_at: Mapped[str | None] = mapped_column(String(100))
    deleted_at: Mapped[str | None] = mapped_column(String(100))
