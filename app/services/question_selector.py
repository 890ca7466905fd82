"""Question retrieval for practice and test sessions.

Picks a shuffled subset of the question bank for an exam/subject pair. When
the optional filters (difficulty, type, pattern, topic) leave nothing, the
query is relaxed to the exam/subject pair alone so a test is never empty.
"""
import logging
import random
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError, InsufficientQuestionsError
from app.models.question import Question

logger = logging.getLogger(__name__)

MODE_PRACTICE = "practice"
MODE_TEST = "test"
TEST_DIFFICULTIES = ("MEDIUM", "HARD")
MISSING_EXPLANATION = "Explanation not available"


class QuestionView(BaseModel):
    """Canonical question handed to sessions and API responses."""

    id: str
    exam_type: str
    subject: str
    topic: str = ""
    text: str
    type: str
    pattern: str
    difficulty: str
    options: List[str] = []
    correct_answer: str
    explanation: str = MISSING_EXPLANATION

    @classmethod
    def from_row(cls, row: Question) -> "QuestionView":
        return cls(
            id=str(row.id),
            exam_type=row.exam_type,
            subject=row.subject,
            topic=row.topic or "",
            text=row.question_text,
            type=row.question_type,
            pattern=row.question_pattern,
            difficulty=row.difficulty,
            options=row.options if isinstance(row.options, list) else [],
            correct_answer=str(row.correct_answer),
            explanation=row.explanation or MISSING_EXPLANATION,
        )


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value.lower() != "all"


def select_questions(
    db: Session,
    exam_type: str,
    subject: str,
    pattern: Optional[str] = None,
    mode: str = MODE_PRACTICE,
    specific_topic: Optional[str] = None,
    question_type: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> List[QuestionView]:
    """
    Select up to ``MAX_QUESTIONS`` questions for an exam and subject.

    Args:
        db: Database session
        exam_type: Exam identifier (exact match)
        subject: Subject name (exact match)
        pattern: THEORETICAL / NUMERICAL, or None/"all" for no filter
        mode: "practice" or "test"; test mode only uses MEDIUM and HARD questions
        specific_topic: Case-insensitive substring matched against the topic
        question_type: MCQ / NUMERICAL, or None/"all" for no filter
        rng: Random source used for shuffling (seed it for reproducible picks)

    Returns:
        Between ``MIN_QUESTIONS`` and ``MAX_QUESTIONS`` questions in random order

    Raises:
        NotFoundError: No question exists for the exam/subject pair
        InsufficientQuestionsError: Fewer than ``MIN_QUESTIONS`` qualify
    """
    rng = rng or random.Random()
    topic = (specific_topic or "").strip()

    logger.info(
        "Selecting questions exam_type=%s subject=%s pattern=%s mode=%s topic=%r type=%s",
        exam_type, subject, pattern, mode, topic, question_type,
    )

    base = db.query(Question).filter(
        Question.exam_type == exam_type,
        Question.subject == subject,
    )

    if base.with_entities(Question.id).first() is None:
        raise NotFoundError(f"No questions found for {exam_type} - {subject}")

    query = base
    if mode == MODE_TEST:
        query = query.filter(Question.difficulty.in_(TEST_DIFFICULTIES))
    if _is_set(question_type):
        query = query.filter(Question.question_type == question_type)
    if _is_set(pattern):
        query = query.filter(Question.question_pattern == pattern)
    if topic:
        query = query.filter(Question.topic.ilike(f"%{topic}%"))

    rows = query.all()
    logger.info("Found %d questions matching criteria", len(rows))

    if not rows:
        rows = base.all()
        logger.warning(
            "Filters matched nothing for %s - %s, using %d relaxed results",
            exam_type, subject, len(rows),
        )

    if len(rows) < settings.MIN_QUESTIONS:
        raise InsufficientQuestionsError(
            "Insufficient questions available. Please try different criteria."
        )

    # stable order before shuffling
    rows = sorted(rows, key=lambda r: str(r.id))
    rng.shuffle(rows)
    picked = rows[:min(settings.MAX_QUESTIONS, len(rows))]

    logger.info("Returning %d questions", len(picked))
    return [QuestionView.from_row(row) for row in picked]
