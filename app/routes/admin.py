"""Admin routes for the question bank, exam catalogue and user accounts.

Only the account configured as ``ADMIN_EMAIL`` may call these.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Query
from pydantic import BaseModel, Field
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.db.sessions import get_db
from app.models.user import User, ACCOUNT_TYPES
from app.models.question import Question
from app.models.exam_config import ExamConfig
from app.core.security import get_admin_user
from app.services.exam_catalog import clean_exam_config
from app.services.question_ingestor import ingest, ingest_json
from app.services.openai_service import OpenAIService


router = APIRouter(prefix="/admin", tags=["Admin"])
logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5 MB


# Request/Response schemas
class IngestResponse(BaseModel):
    inserted: int


class QuestionResponse(BaseModel):
    id: str
    exam_type: str
    subject: str
    topic: Optional[str]
    question_text: str
    question_type: str
    question_pattern: str
    difficulty: str
    options: Optional[List[str]]
    correct_answer: str
    explanation: Optional[str]
    usage_count: int
    created_at: str


class QuestionListResponse(BaseModel):
    questions: List[QuestionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class QuestionStat(BaseModel):
    exam_type: str
    subject: str
    count: int


class GenerateRequest(BaseModel):
    exam_type: str
    subject: str
    question_type: str = Field(default="MCQ", pattern="^(MCQ|NUMERICAL)$")
    question_pattern: str = Field(default="THEORETICAL", pattern="^(THEORETICAL|NUMERICAL)$")
    mode: str = Field(default="practice", pattern="^(practice|test)$")
    count: int = Field(default=10, ge=1, le=20)
    topic: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    tokens: int
    account_type: str
    created_at: str


class ExamConfigRequest(BaseModel):
    exam_type: Optional[str] = None
    subjects: List[str] = []
    question_types: List[str] = []
    question_patterns: List[str] = []


class ExamConfigResponse(BaseModel):
    id: str
    exam_type: str
    subjects: List[str]
    question_types: List[str]
    question_patterns: List[str]
    created_at: str
    updated_at: Optional[str]


class AccountTypeRequest(BaseModel):
    account_type: str


class AddTokensRequest(BaseModel):
    amount: int = Field(gt=0, le=1000)


def get_openai_service() -> OpenAIService:
    return OpenAIService()


def _question_response(q: Question) -> QuestionResponse:
    return QuestionResponse(
        id=str(q.id),
        exam_type=q.exam_type,
        subject=q.subject,
        topic=q.topic,
        question_text=q.question_text,
        question_type=q.question_type,
        question_pattern=q.question_pattern,
        difficulty=q.difficulty,
        options=q.options,
        correct_answer=q.correct_answer,
        explanation=q.explanation,
        usage_count=q.usage_count or 0,
        created_at=q.created_at.isoformat()
    )


def _user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=str(user.id),
        name=user.name,
        email=user.email,
        tokens=user.tokens,
        account_type=user.account_type,
        created_at=user.created_at.isoformat()
    )


def _parse_uuid(value: str, detail: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


# -- question bank ---------------------------------------------------------

@router.post("/questions/bulk", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
async def upload_questions(
    file: UploadFile = File(...),
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Bulk upload questions from a JSON file.

    Raises:
        HTTPException 400: Invalid JSON or record
        HTTPException 409: Some questions already exist (nothing inserted)
        HTTPException 500: Insert failed (``committed`` tells what was kept)
    """
    content = await file.read()
    if len(content) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File too large"
        )
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be UTF-8 encoded JSON"
        )

    logger.info("Admin %s uploading %s", admin.email, file.filename)
    return IngestResponse(inserted=ingest_json(db, text))


@router.post("/questions/bulk/json", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
def upload_questions_json(
    payload: Dict[str, Any],
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Bulk upload questions sent directly as a JSON body."""
    return IngestResponse(inserted=ingest(db, payload))


@router.get("/questions", response_model=QuestionListResponse)
def list_questions(
    exam_type: Optional[str] = None,
    subject: Optional[str] = None,
    difficulty: Optional[str] = Query(default=None, pattern="^(EASY|MEDIUM|HARD)$"),
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Paginated question bank, newest first, with filters and text search."""
    query = db.query(Question)

    if exam_type:
        query = query.filter(Question.exam_type == exam_type)
    if subject:
        query = query.filter(Question.subject == subject)
    if difficulty:
        query = query.filter(Question.difficulty == difficulty)
    if search:
        query = query.filter(or_(
            Question.question_text.ilike(f"%{search}%"),
            Question.subject.ilike(f"%{search}%")
        ))

    total = query.count()
    questions = query.order_by(Question.created_at.desc()).offset(
        (page - 1) * page_size
    ).limit(page_size).all()

    return QuestionListResponse(
        questions=[_question_response(q) for q in questions],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size
    )


@router.get("/questions/stats", response_model=List[QuestionStat])
def question_stats(
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Number of questions per exam and subject."""
    rows = db.query(
        Question.exam_type, Question.subject, func.count(Question.id)
    ).group_by(Question.exam_type, Question.subject).order_by(
        Question.exam_type, Question.subject
    ).all()

    return [QuestionStat(exam_type=e, subject=s, count=c) for e, s, c in rows]


@router.post("/questions/generate", response_model=List[QuestionResponse], status_code=status.HTTP_201_CREATED)
def generate_questions(
    request: GenerateRequest,
    admin: User = Depends(get_admin_user),
    openai_service: OpenAIService = Depends(get_openai_service),
    db: Session = Depends(get_db)
):
    """
    Generate questions with OpenAI and add them to the bank.

    Raises:
        HTTPException 502: OpenAI failed or returned invalid questions
    """
    generated = openai_service.generate_exam_questions(
        exam=request.exam_type,
        subject=request.subject,
        question_type=request.question_type,
        question_pattern=request.question_pattern,
        mode=request.mode,
        count=request.count,
        topic=request.topic
    )

    questions = [
        Question(
            exam_type=request.exam_type,
            subject=request.subject,
            topic=request.topic or request.subject,
            question_text=q["text"],
            question_type=q["type"],
            question_pattern=q["pattern"],
            difficulty=q["difficulty"],
            options=q["options"],
            correct_answer=q["correctAnswer"],
            explanation=q["explanation"]
        )
        for q in generated
    ]
    db.add_all(questions)
    db.commit()
    for q in questions:
        db.refresh(q)

    logger.info("Generated %d questions for %s - %s", len(questions), request.exam_type, request.subject)
    return [_question_response(q) for q in questions]


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(
    question_id: str,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Delete a question from the bank."""
    question = db.query(Question).filter(
        Question.id == _parse_uuid(question_id, "Question not found")
    ).first()
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")

    db.delete(question)
    db.commit()


# -- exam configuration ----------------------------------------------------

def _exam_config_response(config: ExamConfig) -> ExamConfigResponse:
    return ExamConfigResponse(
        id=str(config.id),
        exam_type=config.exam_type,
        subjects=config.subjects or [],
        question_types=config.question_types or [],
        question_patterns=config.question_patterns or [],
        created_at=config.created_at.isoformat(),
        updated_at=config.updated_at.isoformat() if config.updated_at else None
    )


def _get_exam_config(db: Session, config_id: str) -> ExamConfig:
    config = db.query(ExamConfig).filter(
        ExamConfig.id == _parse_uuid(config_id, "Exam configuration not found")
    ).first()
    if not config:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam configuration not found")
    return config


def _ensure_exam_type_free(db: Session, exam_type: str, config_id: Optional[uuid.UUID] = None):
    query = db.query(ExamConfig).filter(ExamConfig.exam_type == exam_type)
    if config_id is not None:
        query = query.filter(ExamConfig.id != config_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Exam {exam_type} is already configured"
        )


@router.get("/exams", response_model=List[ExamConfigResponse])
def list_exam_configs(
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Stored exam configurations, oldest first."""
    configs = db.query(ExamConfig).order_by(ExamConfig.created_at.asc(), ExamConfig.exam_type.asc()).all()
    return [_exam_config_response(c) for c in configs]


@router.post("/exams", response_model=ExamConfigResponse, status_code=status.HTTP_201_CREATED)
def create_exam_config(
    request: ExamConfigRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Add an exam to the catalogue.

    Raises:
        HTTPException 400: Exam type missing or no subjects
        HTTPException 409: Exam type already configured
    """
    values = clean_exam_config(**request.model_dump())
    _ensure_exam_type_free(db, values["exam_type"])

    config = ExamConfig(**values)
    db.add(config)
    db.commit()
    db.refresh(config)

    logger.info("Admin %s configured exam %s", admin.email, config.exam_type)
    return _exam_config_response(config)


@router.put("/exams/{config_id}", response_model=ExamConfigResponse)
def update_exam_config(
    config_id: str,
    request: ExamConfigRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Replace an exam's type, subjects and allowed question kinds."""
    config = _get_exam_config(db, config_id)
    values = clean_exam_config(**request.model_dump())
    _ensure_exam_type_free(db, values["exam_type"], config.id)

    for field, value in values.items():
        setattr(config, field, value)
    db.commit()
    db.refresh(config)
    return _exam_config_response(config)


@router.delete("/exams/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_exam_config(
    config_id: str,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Remove an exam from the catalogue. Its questions stay in the bank."""
    config = _get_exam_config(db, config_id)
    db.delete(config)
    db.commit()


# -- users -------------------------------------------------------------------

@router.get("/users", response_model=List[UserSummary])
def list_users(
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """All user accounts, newest first."""
    users = db.query(User).order_by(User.created_at.desc()).all()
    return [_user_summary(u) for u in users]


@router.patch("/users/{user_id}/account-type", response_model=UserSummary)
def set_account_type(
    user_id: str,
    request: AccountTypeRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Switch a user between free and premium."""
    if request.account_type not in ACCOUNT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"account_type must be one of: {', '.join(ACCOUNT_TYPES)}"
        )

    user = db.query(User).filter(User.id == _parse_uuid(user_id, "User not found")).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    user.account_type = request.account_type
    db.commit()
    db.refresh(user)
    return _user_summary(user)


@router.post("/users/{user_id}/tokens", response_model=UserSummary)
def add_tokens(
    user_id: str,
    request: AddTokensRequest,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Add tokens to a user's balance."""
    user = db.query(User).filter(User.id == _parse_uuid(user_id, "User not found")).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    user.tokens = User.tokens + request.amount
    db.commit()
    db.refresh(user)
    return _user_summary(user)
