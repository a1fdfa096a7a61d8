"""Account and profile tables."""
from __future__ import annotations

from sqlalchemy import Column, String, Text, DateTime, ForeignKey

from recipebox.db.tables import Base, utcnow, new_id


class UserRow(Base):
    """Login account — email + PBKDF2 password hash."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class ProfileRow(Base):
    """Public profile; shares its id with the account that owns it."""
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
