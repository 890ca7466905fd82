"""Saved question routes."""
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.sessions import get_db
from app.models.user import User
from app.models.question import Question, SavedQuestion
from app.core.security import get_optional_user, get_current_user
from app.core.exceptions import AuthenticationRequiredError
from app.services.question_selector import QuestionView
from app.services.saved_questions import save_question_copy


router = APIRouter(prefix="/saved", tags=["Saved Questions"])


# Request/Response schemas
class SaveRequest(BaseModel):
    question_id: str


class SavedQuestionResponse(BaseModel):
    id: str
    source_question_id: str
    exam_type: str
    subject: str
    question_text: str
    question_type: str
    options: Optional[List[str]]
    correct_answer: str
    explanation: Optional[str]
    difficulty: Optional[str]
    created_at: str


def _to_response(saved: SavedQuestion) -> SavedQuestionResponse:
    return SavedQuestionResponse(
        id=str(saved.id),
        source_question_id=saved.source_question_id,
        exam_type=saved.exam_type,
        subject=saved.subject,
        question_text=saved.question_text,
        question_type=saved.question_type,
        options=saved.options,
        correct_answer=saved.correct_answer,
        explanation=saved.explanation,
        difficulty=saved.difficulty,
        created_at=saved.created_at.isoformat()
    )


def _parse_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")


@router.get("", response_model=List[SavedQuestionResponse])
def list_saved_questions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Saved questions of the current user, newest first."""
    saved = db.query(SavedQuestion).filter(
        SavedQuestion.user_id == current_user.id
    ).order_by(SavedQuestion.created_at.desc()).all()
    return [_to_response(s) for s in saved]


@router.post("", response_model=SavedQuestionResponse, status_code=status.HTTP_201_CREATED)
def save_bank_question(
    request: SaveRequest,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Save a question from the bank (used by practice mode).

    Anonymous callers get 401 asking them to sign in.
    """
    if current_user is None:
        raise AuthenticationRequiredError("Please sign in to save questions")

    question = db.query(Question).filter(Question.id == _parse_id(request.question_id)).first()
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")

    saved = save_question_copy(db, current_user, QuestionView.from_row(question))
    return _to_response(saved)


@router.delete("/{saved_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_saved_question(
    saved_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a question from the current user's saved list."""
    saved = db.query(SavedQuestion).filter(
        SavedQuestion.id == _parse_id(saved_id),
        SavedQuestion.user_id == current_user.id
    ).first()
    if not saved:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved question not found")

    db.delete(saved)
    db.commit()
