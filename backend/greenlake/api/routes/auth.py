"""
Registration and login. Registration also opens the user's cart; wallets
are created separately through /users/create-wallet.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.config import get_settings
from greenlake.db.session import get_db
from greenlake.schemas.user import Token, UserCreate, UserLogin, UserResponse
from greenlake.services import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])
settings = get_settings()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    return await auth_service.register_user(db, payload)


@router.post("/login", response_model=Token)
async def login(payload: UserLogin, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    access_token = await auth_service.authenticate_user(db, payload)
    return Token(access_token=access_token, expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
