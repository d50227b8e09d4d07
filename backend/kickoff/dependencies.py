import json

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from .database import get_session
from .errors import Forbidden, Unauthorized
from .models import User
from .security import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

TOKEN_PARAM = "token"


async def get_request_token(
    request: Request,
    bearer: str | None = Depends(oauth2_scheme),
) -> str | None:
    """Return the identity token from the header, the query string or the body.

    The bearer header wins, then the ``token`` query parameter, then a
    ``token`` field of a JSON object body.
    """
    if bearer:
        return bearer

    query_token = request.query_params.get(TOKEN_PARAM)
    if query_token:
        return query_token

    if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
        raw = await request.body()
        if raw:
            try:
                payload = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError):
                return None
            if isinstance(payload, dict):
                body_token = payload.get(TOKEN_PARAM)
                if isinstance(body_token, str) and body_token:
                    return body_token
    return None


async def get_current_user(
    token: str | None = Depends(get_request_token),
    session: AsyncSession = Depends(get_session),
) -> User:
    if not token:
        raise Unauthorized("Unauthorized. An identity token is required.")

    try:
        user_id = decode_token(token)
    except ValueError:
        raise Unauthorized("Unauthorized. The identity token is invalid.") from None

    statement = select(User).where(User.id == user_id)
    result = await session.execute(statement)
    user = result.scalar_one_or_none()

    if not user:
        raise Unauthorized("Unauthorized. User not found.")

    return user


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Forbidden("Forbidden. You do not have administrator access.")
    return current_user
