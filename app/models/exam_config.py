"""Exam catalogue model."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, Uuid
from app.db.base import Base


class ExamConfig(Base):
    """An exam offered to users, with its subjects and allowed question kinds."""

    __tablename__ = "exam_configs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_type = Column(String(50), unique=True, nullable=False, index=True)
    subjects = Column(JSON, nullable=False, default=list)  # ["Electronics and Communication Engineering", ...]
    question_types = Column(JSON, nullable=False, default=list)  # subset of MCQ / NUMERICAL
    question_patterns = Column(JSON, nullable=False, default=list)  # subset of THEORETICAL / NUMERICAL
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
