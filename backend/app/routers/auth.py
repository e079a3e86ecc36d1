"""
Follow-Up Unit - Authentication Router
Handles user registration, login (password and Google), and session verification.
"""
from uuid import uuid4
from typing import Optional
import logging
import re

from fastapi import APIRouter, Depends, HTTPException, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..models.db_models import UserDB
from ..auth import ROLE_USER, hash_password, verify_password, create_access_token, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]+$')
PASSWORD_PATTERN = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]')


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class RegisterRequest(BaseModel):
    username: str
    password: str
    email: Optional[EmailStr] = None

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters long.')
        if len(v) > 30:
            raise ValueError('Username must not exceed 30 characters.')
        if not USERNAME_PATTERN.match(v):
            raise ValueError('Username can only contain letters, numbers, and underscores.')
        return v

    @field_validator('password')
    @classmethod
    def validate_password_strength(cls, v):
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters long.')
        if not PASSWORD_PATTERN.match(v):
            raise ValueError(
                'Password must contain at least one uppercase letter, one lowercase letter, '
                'one number, and one special character (@$!%*?&).'
            )
        return v


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator('username')
    @classmethod
    def strip_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Username is required.')
        return v


class GoogleTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = Field(None, alias="idToken")


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: str
    username: str
    role: str = ROLE_USER
    email: Optional[str] = None


class TokenResponse(BaseModel):
    token: str
    user: UserResponse


def _token_response(user: UserDB) -> TokenResponse:
    return TokenResponse(
        token=create_access_token(user.id, user.username, user.role or ROLE_USER),
        user=UserResponse(id=user.id, username=user.username, role=user.role or ROLE_USER, email=user.email),
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new user account. New accounts always get the "user" role.
    """
    existing = db.query(UserDB).filter(UserDB.username == request.username).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists."
        )

    if request.email:
        existing_email = db.query(UserDB).filter(UserDB.email == request.email.lower()).first()
        if existing_email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered."
            )

    user = UserDB(
        id=str(uuid4()),
        username=request.username,
        email=request.email.lower() if request.email else None,
        password_hash=hash_password(request.password),
        role=ROLE_USER,
    )

    db.add(user)
    db.commit()

    logger.info(f"User registered: {request.username}")
    return MessageResponse(message="User registered successfully!")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Authenticate user and return JWT token.
    """
    user = db.query(UserDB).filter(UserDB.username == request.username).first()

    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid credentials."
        )

    logger.info(f"User logged in: {user.username} ({user.id})")
    return _token_response(user)


@router.post("/google/verify-token", response_model=TokenResponse)
async def google_login(request: GoogleTokenRequest, db: Session = Depends(get_db)):
    """
    Sign in with a Google ID token.

    Links the Google account to an existing user with the same email, or
    creates a new user when none exists.
    """
    if not request.token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Google ID Token.")

    if not config.GOOGLE_CLIENT_ID:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth is not configured. Please set GOOGLE_CLIENT_ID environment variable."
        )

    try:
        payload = id_token.verify_oauth2_token(
            request.token, google_requests.Request(), config.GOOGLE_CLIENT_ID
        )
    except ValueError as e:
        logger.error(
            f"Google token verification error: {e}. "
            "Ensure GOOGLE_CLIENT_ID matches the frontend Google Sign-In client_id exactly."
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token verification failed. Please try again."
        )

    if not payload or not payload.get("email"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload.")

    google_id = payload["sub"]
    email = payload["email"].lower()
    name = payload.get("name")

    user = db.query(UserDB).filter(
        or_(UserDB.google_id == google_id, UserDB.email == email)
    ).first()

    if user is None:
        username = name or email
        if db.query(UserDB).filter(UserDB.username == username).first():
            base = re.sub(r'\s+', '_', name or email.split("@")[0])
            username = f"{base}_{google_id[-8:]}"
        user = UserDB(
            id=str(uuid4()),
            username=username,
            email=email,
            google_id=google_id,
            role=ROLE_USER,
        )
        db.add(user)
        db.commit()
        logger.info(f"User created from Google sign-in: {user.id}")
    elif not user.google_id:
        user.google_id = google_id
        db.commit()
        logger.info(f"Google account linked to user: {user.id}")

    logger.info(f"Google login successful: {user.id}")
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: UserDB = Depends(get_current_user)):
    """
    Get current authenticated user info.
    """
    return UserResponse(
        id=current_user.id,
        username=current_user.username,
        role=current_user.role or ROLE_USER,
        email=current_user.email,
    )
