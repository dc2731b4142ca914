from datetime import timedelta

from fastapi import APIRouter, HTTPException, status

from backend.app import schemas
from backend.app.api_v1.auth import (
    AuthFormDep,
    CurrentUserDep,
    DBDep,
    authenticate_user,
    create_access_token,
    create_user,
    get_user_by_username,
)
from backend.app.core.settings import settings
from backend.app.models import UserRole

router = APIRouter()


@router.post("/register", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
async def register(user_in: schemas.UserCreate, db: DBDep):
    """Register a new account. The first account created is the admin."""
    if await get_user_by_username(db, user_in.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )
    return await create_user(db, user_in)


@router.post("/token", response_model=schemas.Token)
async def login(form_data: AuthFormDep, db: DBDep):
    """Login and get access token"""
    user = await authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(
        data={"sub": user.username},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=schemas.UserProfile)
async def read_current_user(current_user: CurrentUserDep):
    """Get current user info, including whether they may change privileged client settings."""
    return schemas.UserProfile(
        **current_user.model_dump(),
        is_privileged=current_user.role == UserRole.admin,
    )
