"""Authentication routes."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from plotter.database import get_db
from plotter.data.models import User
from plotter.auth import schemas
from plotter.auth.utils import get_password_hash, verify_password, create_access_token
from plotter.auth.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(data: schemas.SignupRequest, db: AsyncSession = Depends(get_db)):
    """
    Register a new user with email and password.
    Returns JWT token on success.
    """
    result = await db.execute(select(User).where(User.email == data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(email=data.email, hashed_password=get_password_hash(data.password))
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"Registered user {user.id}")

    token = create_access_token(user.id, user.email)
    return schemas.AuthResponse(
        access_token=token,
        user=schemas.UserAuthInfo.model_validate(user)
    )


@router.post("/login", response_model=schemas.AuthResponse)
async def login(data: schemas.LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate user with email and password."""
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    token = create_access_token(user.id, user.email)
    return schemas.AuthResponse(
        access_token=token,
        user=schemas.UserAuthInfo.model_validate(user)
    )


@router.get("/me", response_model=schemas.UserAuthInfo)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user info."""
    return schemas.UserAuthInfo.model_validate(current_user)
