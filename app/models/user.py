"""User model (also carries the token/tier profile)."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import Base


ACCOUNT_FREE = "free"
ACCOUNT_PREMIUM = "premium"
ACCOUNT_TYPES = (ACCOUNT_FREE, ACCOUNT_PREMIUM)


class User(Base):
    """User account with its token balance and account tier."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("tokens >= 0", name="ck_users_tokens_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(150), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    tokens = Column(Integer, nullable=False, default=5)
    account_type = Column(String(20), nullable=False, default=ACCOUNT_FREE)  # free / premium
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    saved_questions = relationship("SavedQuestion", back_populates="user", cascade="all, delete-orphan")
    test_attempts = relationship("TestAttempt", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_premium(self) -> bool:
        return self.account_type == ACCOUNT_PREMIUM
