from datetime import datetime
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict

from chatbroker.core.config import get_settings

settings = get_settings()


class TokenPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    sub: str
    exp: datetime | None = None
    email: str | None = None
    role: str | None = None


class TokenExpiredError(Exception):
    pass


class InvalidTokenError(Exception):
    pass


def decode_token(token: str) -> TokenPayload:
    """Verify a bearer token and return its claims."""
    options: dict[str, Any] = {"verify_aud": settings.jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError(str(e)) from e
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    try:
        return TokenPayload(**payload)
    except ValueError as e:
        raise InvalidTokenError(str(e)) from e


async def get_current_user(request: Request) -> TokenPayload:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is required",
        )

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Authorization header format must be "Bearer {token}"',
        )

    try:
        return decode_token(parts[1])
    except TokenExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
        )
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )


CurrentUser = Annotated[TokenPayload, Depends(get_current_user)]
