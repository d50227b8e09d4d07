from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

settings = get_settings()
ALGORITHM = "HS256"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user_id: str) -> tuple[str, datetime]:
    """Sign an identity token for ``user_id`` and return it with its expiry."""
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    claims = {"sub": user_id, "exp": expires_at}
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM), expires_at


def decode_token(token: str) -> str:
    """Return the user id carried by a valid, unexpired token."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Token verification failed.") from exc
    user_id = claims.get("sub")
    if not user_id:
        raise ValueError("Token carries no user.")
    return user_id
