"""Test mode routes."""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.sessions import get_db
from app.models.user import User
from app.models.test_attempt import TestAttempt
from app.core.security import get_current_user
from app.core.exceptions import QuestionNotInSessionError
from app.services.session_registry import registry
from app.services.test_session import TestFilters, TestSessionController


router = APIRouter(prefix="/test", tags=["Test"])

SESSION_NOT_FOUND = "Session not found"


# Request/Response schemas
class StartTestRequest(BaseModel):
    exam_type: Optional[str] = None
    subject: Optional[str] = None
    specific_topic: Optional[str] = None
    question_type: str = "MCQ"
    question_pattern: str = "THEORETICAL"

    def to_filters(self) -> TestFilters:
        return TestFilters(**self.model_dump())


class AnswerRequest(BaseModel):
    question_id: str
    answer: str


class ReviewRequest(BaseModel):
    question_id: str


class SessionResponse(BaseModel):
    session_id: str
    status: str
    exam_type: Optional[str]
    subject: Optional[str]
    specific_topic: Optional[str]
    question_pattern: Optional[str]
    time_remaining: int
    questions: List[Dict[str, Any]]
    answers: Dict[str, str]
    marked_for_review: List[str]
    saved_question_ids: List[str]
    score: Optional[int]
    total_questions: int


class ReviewResponse(BaseModel):
    question_id: str
    marked: bool


class ResultsResponse(BaseModel):
    session_id: str
    score: int
    total_questions: int
    results: List[Dict[str, Any]]


class SavedQuestionResponse(BaseModel):
    id: str
    source_question_id: str
    question_text: str


class AttemptResponse(BaseModel):
    id: str
    exam_type: str
    subject: str
    score: int
    total_questions: int
    accuracy: float
    completed_at: Optional[str]


def _get_controller(session_id: str, current_user: User) -> TestSessionController:
    controller = registry.get(session_id, current_user.id)
    if controller is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=SESSION_NOT_FOUND)
    return controller


def _refresh(controller: TestSessionController, db: Session) -> TestSessionController:
    """Apply elapsed time, and store the attempt once the test has completed."""
    controller.sync_clock()
    controller.record_attempt(db)
    return controller


@router.post("/start", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def start_test(
    request: StartTestRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Start a timed test.

    Free accounts need at least one token; the token is only deducted after
    the question set has been generated.

    Raises:
        HTTPException 400: Exam or subject missing
        HTTPException 402: No tokens left (upgrade required)
        HTTPException 404: No questions for the exam and subject
        HTTPException 422: Too few questions for a test
    """
    registry.cleanup_expired()
    controller = TestSessionController(user_id=current_user.id)
    controller.start(db, request.to_filters(), current_user)
    registry.add(controller)
    return controller.to_dict()


@router.get("/attempts", response_model=List[AttemptResponse])
def list_attempts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Completed tests of the current user, newest first."""
    attempts = db.query(TestAttempt).filter(
        TestAttempt.user_id == current_user.id
    ).order_by(TestAttempt.completed_at.desc()).all()

    return [
        AttemptResponse(
            id=str(a.id),
            exam_type=a.exam_type,
            subject=a.subject,
            score=a.score,
            total_questions=a.total_questions,
            accuracy=float(a.accuracy or 0),
            completed_at=a.completed_at.isoformat() if a.completed_at else None
        )
        for a in attempts
    ]


@router.get("/{session_id}", response_model=SessionResponse)
def get_test(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Current session state; submits automatically once time has run out."""
    controller = _refresh(_get_controller(session_id, current_user), db)
    return controller.to_dict()


@router.post("/{session_id}/answer", response_model=SessionResponse)
def answer_question(
    session_id: str,
    request: AnswerRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record an answer. Ignored once the test is completed."""
    controller = _refresh(_get_controller(session_id, current_user), db)
    if controller.get_question(request.question_id) is None:
        raise QuestionNotInSessionError(f"Question {request.question_id} is not part of this test")
    controller.answer(request.question_id, request.answer)
    return controller.to_dict()


@router.post("/{session_id}/review", response_model=ReviewResponse)
def toggle_review(
    session_id: str,
    request: ReviewRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark or unmark a question for review."""
    controller = _refresh(_get_controller(session_id, current_user), db)
    if controller.get_question(request.question_id) is None:
        raise QuestionNotInSessionError(f"Question {request.question_id} is not part of this test")
    marked = controller.toggle_review(request.question_id)
    return ReviewResponse(question_id=request.question_id, marked=marked)


@router.post("/{session_id}/submit", response_model=ResultsResponse)
def submit_test(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Submit the test. Submitting twice returns the same result."""
    controller = _refresh(_get_controller(session_id, current_user), db)
    controller.submit()
    controller.record_attempt(db)
    return ResultsResponse(
        session_id=controller.session_id,
        score=controller.score,
        total_questions=len(controller.questions),
        results=controller.results()
    )


@router.get("/{session_id}/results", response_model=ResultsResponse)
def get_results(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Scored review of a completed test."""
    controller = _refresh(_get_controller(session_id, current_user), db)
    return ResultsResponse(
        session_id=controller.session_id,
        score=controller.score or 0,
        total_questions=len(controller.questions),
        results=controller.results()
    )


@router.post("/{session_id}/restart", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def restart_test(
    session_id: str,
    request: Optional[StartTestRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Take another test, reusing the previous selection unless a new one is sent."""
    controller = _refresh(_get_controller(session_id, current_user), db)
    controller.restart(db, current_user, request.to_filters() if request else None)
    return controller.to_dict()


@router.post("/{session_id}/questions/{question_id}/save", response_model=SavedQuestionResponse)
def save_question(
    session_id: str,
    question_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Save a reviewed question to the user's list."""
    controller = _refresh(_get_controller(session_id, current_user), db)
    saved = controller.save_question(db, question_id, current_user)
    return SavedQuestionResponse(
        id=str(saved.id),
        source_question_id=saved.source_question_id,
        question_text=saved.question_text
    )
