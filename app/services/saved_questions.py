"""Saved question persistence shared by practice and test flows."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationRequiredError, SaveQuestionError
from app.models.question import SavedQuestion
from app.models.user import User
from app.services.question_selector import QuestionView

logger = logging.getLogger(__name__)


def _find_existing(db: Session, user: User, question_id: str) -> Optional[SavedQuestion]:
    return db.query(SavedQuestion).filter(
        SavedQuestion.user_id == user.id,
        SavedQuestion.source_question_id == question_id,
    ).first()


def save_question_copy(db: Session, user: Optional[User], question: QuestionView) -> SavedQuestion:
    """
    Store a denormalized copy of ``question`` in the user's saved list.

    Saving the same question twice returns the existing record.

    Raises:
        AuthenticationRequiredError: No signed-in user
        SaveQuestionError: The write failed
    """
    if user is None:
        raise AuthenticationRequiredError("Please sign in to save questions")

    existing = _find_existing(db, user, question.id)
    if existing:
        return existing

    saved = SavedQuestion(
        user_id=user.id,
        source_question_id=question.id,
        exam_type=question.exam_type,
        subject=question.subject,
        question_text=question.text,
        question_type=question.type,
        options=question.options or None,
        correct_answer=question.correct_answer,
        explanation=question.explanation,
        difficulty=question.difficulty,
    )
    try:
        db.add(saved)
        db.commit()
        db.refresh(saved)
    except IntegrityError:
        # lost a race against a concurrent save of the same question
        db.rollback()
        existing = _find_existing(db, user, question.id)
        if existing is None:
            raise SaveQuestionError("Failed to save question")
        return existing
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error saving question %s for user %s: %s", question.id, user.id, e)
        raise SaveQuestionError("Failed to save question") from e

    logger.info("User %s saved question %s", user.id, question.id)
    return saved
