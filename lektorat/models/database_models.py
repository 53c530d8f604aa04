"""
SQLAlchemy ORM models for the Lektorat database.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from lektorat.database import Base


class User(Base):
    """User account (identity supplied by the upstream gateway)."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    credentials = relationship(
        "ApiCredential",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )


class ApiCredential(Base):
    """Per-user provider API keys; either key may be missing."""

    __tablename__ = "api_credentials"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    openai_api_key = Column(Text, nullable=True)
    claude_api_key = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="credentials")
