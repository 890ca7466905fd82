"""Exam catalogue: which exams and subjects users can pick."""
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import MalformedInputError
from app.models.exam_config import ExamConfig
from app.models.question import QUESTION_PATTERNS, QUESTION_TYPES

logger = logging.getLogger(__name__)


def _clean_list(values: Optional[List[str]]) -> List[str]:
    cleaned = []
    for value in values or []:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def clean_exam_config(
    exam_type: Optional[str],
    subjects: Optional[List[str]],
    question_types: Optional[List[str]] = None,
    question_patterns: Optional[List[str]] = None,
) -> Dict:
    """
    Normalize an admin-submitted exam configuration.

    Question types and patterns default to all supported values.

    Raises:
        MalformedInputError: Missing exam type, no subjects, or unknown type/pattern
    """
    exam_type = (exam_type or "").strip()
    subjects = _clean_list(subjects)
    if not exam_type or not subjects:
        raise MalformedInputError("Exam type and at least one subject are required")

    types = [t.upper() for t in _clean_list(question_types)] or list(QUESTION_TYPES)
    patterns = [p.upper() for p in _clean_list(question_patterns)] or list(QUESTION_PATTERNS)
    unknown = [t for t in types if t not in QUESTION_TYPES] + [p for p in patterns if p not in QUESTION_PATTERNS]
    if unknown:
        raise MalformedInputError(f"Unsupported question type or pattern: {', '.join(unknown)}")

    return {
        "exam_type": exam_type,
        "subjects": subjects,
        "question_types": types,
        "question_patterns": patterns,
    }


def exam_catalog(db: Session) -> List[Dict]:
    """Configured exams in creation order; the built-in defaults when none are configured."""
    configs = db.query(ExamConfig).order_by(ExamConfig.created_at.asc(), ExamConfig.exam_type.asc()).all()
    if configs:
        return [
            {
                "exam_type": c.exam_type,
                "subjects": list(c.subjects or []),
                "question_types": list(c.question_types or []),
                "question_patterns": list(c.question_patterns or []),
            }
            for c in configs
        ]

    logger.info("No exam configurations stored, using defaults")
    return [
        clean_exam_config(exam_type, subjects)
        for exam_type, subjects in settings.EXAM_SUBJECTS.items()
    ]
