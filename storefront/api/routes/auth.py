"""
Authentication routes

Issues the bearer tokens the access control gate verifies.
Rate limited to slow down credential stuffing.
"""
import logging
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select

from storefront.api.deps import get_current_user, get_database
from storefront.core.config import settings
from storefront.core.database import Database
from storefront.core.exceptions import AuthError, ValidationError
from storefront.core.rate_limit import limiter
from storefront.core.security import create_access_token, hash_password, verify_password
from storefront.models.user import User
from storefront.schemas.user import Token, UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def register(
    request: Request,
    user_data: UserCreate,
    db: Database = Depends(get_database),
):
    """Register a new user and return an access token"""
    async with db.transaction() as session:
        result = await session.execute(select(User).where(User.email == user_data.email))
        if result.scalar_one_or_none():
            raise ValidationError("Email already registered", code="EMAIL_TAKEN")

        user = User(
            email=user_data.email,
            name=user_data.name,
            hashed_password=hash_password(user_data.password),
        )
        session.add(user)
        await session.flush()

    logger.info(f"[auth] Registered user {user.id}")
    return Token(access_token=create_access_token(user.id))


@router.post("/login", response_model=Token)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def login(
    request: Request,
    credentials: UserLogin,
    db: Database = Depends(get_database),
):
    """Exchange email and password for an access token"""
    async with db.session() as session:
        result = await session.execute(select(User).where(User.email == credentials.email))
        user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.info("[auth] Failed login attempt")
        raise AuthError("Invalid email or password")

    if not user.is_active:
        raise AuthError("Account is disabled")

    return Token(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserResponse)
async def read_current_user(user: User = Depends(get_current_user)):
    """Profile of the authenticated user"""
    return user
