"""
Exam Prep API - Test Configuration and Fixtures
"""
import os
from typing import Generator

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['ADMIN_EMAIL'] = 'admin@example.com'

from app.main import app
from app.db.base import Base
from app.db.sessions import get_db
from app.models.user import User, ACCOUNT_FREE
from app.models.question import Question
from app.core.security import get_password_hash, create_access_token
from app.services.session_registry import registry

fake = Faker()

MCQ_OPTIONS = ["A) 1", "B) 2", "C) 3", "D) 4"]
MCQ_ANSWER = "B) 2"

# Test database setup
test_engine = create_engine(
    'sqlite://',
    connect_args={'check_same_thread': False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope='function')
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(autouse=True)
def clear_registry():
    registry._sessions.clear()
    yield
    registry._sessions.clear()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create test client with database override"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: Session):
    """Factory creating users with a given token balance and account tier"""
    def _make(tokens: int = 5, account_type: str = ACCOUNT_FREE, email: str = None) -> User:
        user = User(
            name=fake.name(),
            email=email or fake.unique.email(),
            password_hash=get_password_hash('testpassword123'),
            tokens=tokens,
            account_type=account_type,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def test_user(make_user) -> User:
    return make_user()


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(email='admin@example.com', account_type='premium')


def headers_for(user: User) -> dict:
    token = create_access_token({'sub': str(user.id)})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def add_questions(db_session: Session):
    """Factory seeding the question bank"""
    def _add(
        count: int,
        exam_type: str = 'GATE',
        subject: str = 'ECE',
        difficulty: str = 'MEDIUM',
        pattern: str = 'THEORETICAL',
        question_type: str = 'MCQ',
        topic: str = 'Signals',
        explanation: str = 'Because.',
    ) -> list:
        questions = []
        for i in range(count):
            q = Question(
                exam_type=exam_type,
                subject=subject,
                topic=topic,
                question_text=f'{topic} {difficulty} {pattern} question {i} {fake.uuid4()}',
                question_type=question_type,
                question_pattern=pattern,
                difficulty=difficulty,
                options=MCQ_OPTIONS if question_type == 'MCQ' else None,
                correct_answer=MCQ_ANSWER if question_type == 'MCQ' else '42',
                explanation=explanation,
            )
            db_session.add(q)
            questions.append(q)
        db_session.commit()
        for q in questions:
            db_session.refresh(q)
        return questions
    return _add
