"""Account routes: sign up, sign in and the current profile."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field

from app.db.sessions import get_db
from app.models.user import User, ACCOUNT_FREE
from app.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    get_current_user,
    is_admin,
)
from app.core.config import settings


router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


# Request/Response schemas
class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    name: str = Field(max_length=100)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    name: str
    email: str
    tokens: int
    account_type: str


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    tokens: int
    account_type: str
    is_admin: bool
    created_at: str


def _issue_token(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token({"sub": str(user.id)}),
        user_id=str(user.id),
        name=user.name,
        email=user.email,
        tokens=user.tokens,
        account_type=user.account_type
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Create a free account.

    New accounts start with ``FREE_TOKENS`` test tokens.
    """
    email = request.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        name=request.name,
        email=email,
        password_hash=get_password_hash(request.password),
        tokens=settings.FREE_TOKENS,
        account_type=ACCOUNT_FREE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Registered user %s", user.id)
    return _issue_token(user)


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == request.email.lower()).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )
    return _issue_token(user)


def _profile_response(user: User) -> ProfileResponse:
    return ProfileResponse(
        id=str(user.id),
        name=user.name,
        email=user.email,
        tokens=user.tokens,
        account_type=user.account_type,
        is_admin=is_admin(user),
        created_at=user.created_at.isoformat()
    )


@router.get("/me", response_model=ProfileResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Profile of the signed-in user, including token balance and account tier."""
    return _profile_response(current_user)


@router.patch("/me", response_model=ProfileResponse)
def update_me(
    request: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update the signed-in user's own profile.

    Only the display name is editable; tokens and account tier are admin-managed.
    """
    name = request.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name is required"
        )

    current_user.name = name
    db.commit()
    db.refresh(current_user)
    return _profile_response(current_user)
