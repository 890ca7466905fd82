"""Practice mode and exam catalogue routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.sessions import get_db
from app.core.config import settings
from app.core.exceptions import InvalidSelectionError
from app.services.exam_catalog import exam_catalog
from app.services.question_selector import MODE_PRACTICE, QuestionView, select_questions


router = APIRouter(tags=["Practice"])


# Request/Response schemas
class PracticeRequest(BaseModel):
    exam_type: Optional[str] = None
    subject: Optional[str] = None
    question_type: Optional[str] = None
    question_pattern: Optional[str] = None


class PracticeResponse(BaseModel):
    exam_type: str
    subject: str
    questions: List[QuestionView]


class ExamEntry(BaseModel):
    exam_type: str
    subjects: List[str]
    question_types: List[str]
    question_patterns: List[str]


class ExamCatalogResponse(BaseModel):
    exams: List[ExamEntry]
    test_duration_seconds: int


@router.get("/exams", response_model=ExamCatalogResponse)
def list_exams(db: Session = Depends(get_db)):
    """Exams and their subjects offered for practice and tests, as configured by the admin."""
    return ExamCatalogResponse(
        exams=exam_catalog(db),
        test_duration_seconds=settings.TEST_DURATION_SECONDS
    )


@router.post("/practice/questions", response_model=PracticeResponse)
def practice_questions(request: PracticeRequest, db: Session = Depends(get_db)):
    """
    Questions for untimed practice, answers and explanations included.

    Open to anonymous users and free of token charges.
    """
    if not request.exam_type or not request.subject:
        raise InvalidSelectionError("Please select an exam and subject to continue.")

    questions = select_questions(
        db,
        request.exam_type,
        request.subject,
        pattern=request.question_pattern,
        mode=MODE_PRACTICE,
        question_type=request.question_type,
    )
    return PracticeResponse(
        exam_type=request.exam_type,
        subject=request.subject,
        questions=questions
    )
