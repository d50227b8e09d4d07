from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..database import atomic, get_session
from ..errors import Conflict, Unauthorized
from ..models import User
from ..schemas.auth import RegisterRequest, LoginRequest, Token
from ..schemas.user import UserPublic
from ..security import create_access_token, get_password_hash, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_token(user: User) -> Token:
    token_value, expires_at = create_access_token(user.id)
    return Token(
        access_token=token_value,
        expires_at=expires_at,
        user=UserPublic.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register_user(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    email = payload.email.lower()
    async with atomic(session):
        existing = (await session.execute(select(User.id).where(User.email == email))).scalar_one_or_none()
        if existing:
            raise Conflict("Email is already registered.")

        user = User(
            name=payload.name,
            email=email,
            phone_number=payload.phone_number,
            birthdate=payload.birthdate,
            gender=payload.gender,
            hashed_password=get_password_hash(payload.password),
        )
        session.add(user)

    return _issue_token(user)


@router.post("/login", response_model=Token)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    statement = select(User).where(User.email == payload.email.lower())
    result = await session.execute(statement)
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise Unauthorized("Invalid email or password.")
    return _issue_token(user)
