"""Question bank models."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base import Base


QUESTION_TYPES = ("MCQ", "NUMERICAL")
QUESTION_PATTERNS = ("THEORETICAL", "NUMERICAL")
DIFFICULTIES = ("EASY", "MEDIUM", "HARD")


class Question(Base):
    """Master question bank entry."""

    __tablename__ = "master_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_type = Column(String(50), nullable=False, index=True)
    subject = Column(String(200), nullable=False, index=True)
    topic = Column(String(200), default="")
    question_text = Column(Text, nullable=False, index=True)
    question_type = Column(String(20), nullable=False)  # MCQ / NUMERICAL
    question_pattern = Column(String(20), nullable=False)  # THEORETICAL / NUMERICAL
    difficulty = Column(String(20), nullable=False)  # EASY / MEDIUM / HARD
    options = Column(JSON)  # ["A) ...", "B) ...", "C) ...", "D) ..."] for MCQ
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text)
    usage_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class SavedQuestion(Base):
    """Denormalized copy of a question bookmarked by a user."""

    __tablename__ = "saved_questions"
    __table_args__ = (
        UniqueConstraint("user_id", "source_question_id", name="uq_saved_questions_user_question"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    source_question_id = Column(String(64), nullable=False)
    exam_type = Column(String(50), nullable=False)
    subject = Column(String(200), nullable=False)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False)
    options = Column(JSON)
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text)
    difficulty = Column(String(20))
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="saved_questions")
