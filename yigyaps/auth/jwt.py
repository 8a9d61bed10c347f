import uuid
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from yigyaps.auth.principal import Principal
from yigyaps.config import settings
from yigyaps.errors import UnauthenticatedError
from yigyaps.models.user import User


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user.id),
        "name": user.display_name,
        "username": user.github_username,
        "tier": user.tier,
        "role": user.role,
        "jti": str(uuid.uuid4()),
        "iss": settings.token_issuer,
        "aud": settings.token_audience,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Principal:
    """Return the principal carried by *token* or raise UnauthenticatedError."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.token_audience,
            issuer=settings.token_issuer,
        )
    except ExpiredSignatureError:
        raise UnauthenticatedError("Token has expired. Run `yigyaps login` to sign in again.")
    except JWTError:
        raise UnauthenticatedError("Invalid token")

    sub: str | None = payload.get("sub")
    if not sub:
        raise UnauthenticatedError("Token is missing a subject")
    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise UnauthenticatedError("Token subject is not a user id")

    return Principal(
        id=user_id,
        username=str(payload.get("username", "")),
        display_name=str(payload.get("name", "")),
        tier=str(payload.get("tier", "free")),
        role=str(payload.get("role", "user")),
        auth_method="jwt",
    )
