"""
Session tokens for the admin back-office.
A successful login issues a signed JWT; every admin request must present it,
either in the httpOnly cms_token cookie or as a Bearer token.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import HTTPException, status, Header, Request

from mcoj_api.config import settings
from mcoj_api.utils.auth import verify_admin_password

ALGORITHM = "HS256"
COOKIE_NAME = "cms_token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.

    Args:
        data: Claims to include in the token
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access"
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Decode a token and check its signature, expiry and type.

    Raises:
        HTTPException: 401 if the token is invalid, expired, or not an access token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token", "message": "Authentication token is invalid or expired"}
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token type", "message": "Token is not an access token"}
        )

    return payload


def _token_from_request(request: Request, authorization: Optional[str]) -> Optional[str]:
    # Cookie first, then the Authorization header
    token = request.cookies.get(COOKIE_NAME)
    if not token and authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1]
    return token


def verify_cms_token(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token (fallback to the cms_token cookie)")
) -> dict:
    """
    FastAPI dependency guarding the admin endpoints.

    Returns:
        dict: Decoded token payload

    Raises:
        HTTPException: 401 if the token is missing, invalid, or expired
    """
    token = _token_from_request(request, authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing token", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"}
        )

    return verify_token(token)


def optional_cms_token(
    request: Request,
    authorization: Optional[str] = Header(None)
) -> Optional[dict]:
    """
    Like verify_cms_token, but anonymous requests get None instead of a 401.
    A stale or invalid token counts as anonymous so public pages keep working.
    """
    token = _token_from_request(request, authorization)
    if not token:
        return None
    try:
        return verify_token(token)
    except HTTPException:
        return None


def authenticate_user(password: str) -> dict:
    """
    Check the admin password and return the claims for a new token.

    Raises:
        HTTPException: 401 if password is invalid
        ConfigurationError: If no admin password hash is configured
    """
    if not verify_admin_password(password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid credentials", "message": "Incorrect password"}
        )

    return {
        "role": "admin",
        "sub": "cms_admin"
    }
