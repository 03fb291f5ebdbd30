from passlib.context import CryptContext
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError
from sqlalchemy.orm import Session

import config
from dataBase import get_db_session
from models.models import User, get_current_time

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def warn_on_default_secrets() -> List[str]:
    """
    Log a warning for every signing secret still set to its built-in default.

    Returns:
        List[str]: Names of the settings left at their default value.
    """
    defaults = []
    if config.JWT_SECRET == config.DEFAULT_JWT_SECRET:
        defaults.append("JWT_SECRET")
    if config.JWT_REFRESH_SECRET == config.DEFAULT_JWT_REFRESH_SECRET:
        defaults.append("JWT_REFRESH_SECRET")
    for name in defaults:
        logger.warning("%s is using its default value; set it in the environment before deploying", name)
    return defaults


def hash_password(password: str) -> str:
    """
    Hash a password with the scheme configured in the CryptContext.

    Args:
        password (str): Plain text password.

    Returns:
        str: The salted hash.
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plain text password against a stored hash.

    Args:
        plain_password (str): Plain text password.
        hashed_password (str): Hash to compare against.

    Returns:
        bool: True when the password matches.
    """
    return pwd_context.verify(plain_password, hashed_password)


def generate_verification_token(length: int = 32) -> str:
    """
    Generate a random hex token for e-mail verification or password reset.

    Args:
        length (int): Number of random bytes. Defaults to 32 (64 hex characters).

    Returns:
        str: The token.
    """
    return secrets.token_hex(length)


def create_access_token(user: User) -> str:
    """
    Issue a signed short-lived access token for `user`.
    """
    expire_at = get_current_time() + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "type": "access",
        "exp": expire_at,
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def create_refresh_token(user: User) -> str:
    """
    Issue a signed refresh token for `user`.

    Each token carries a random `jti` so that two tokens issued within the
    same second are still different values.
    """
    expire_at = get_current_time() + timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {
        "sub": str(user.id),
        "type": "refresh",
        "jti": uuid.uuid4().hex,
        "exp": expire_at,
    }
    return jwt.encode(payload, config.JWT_REFRESH_SECRET, algorithm=config.JWT_ALGORITHM)


def create_token_pair(user: User) -> Dict[str, str]:
    return {
        "access_token": create_access_token(user),
        "refresh_token": create_refresh_token(user),
        "token_type": "bearer",
    }


def _decode(token: str, secret: str, token_type: str) -> Dict[str, Any]:
    payload = jwt.decode(token, secret, algorithms=[config.JWT_ALGORITHM])
    if payload.get("type") != token_type or "sub" not in payload:
        raise JWTError(f"Not a {token_type} token")
    return payload


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        ExpiredSignatureError: If the token has expired.
        JWTError: If the token is malformed, badly signed or not an access token.
    """
    return _decode(token, config.JWT_SECRET, "access")


def decode_refresh_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a refresh token.

    Raises:
        ExpiredSignatureError: If the token has expired.
        JWTError: If the token is malformed, badly signed or not a refresh token.
    """
    return _decode(token, config.JWT_REFRESH_SECRET, "refresh")


bearer_scheme = HTTPBearer(auto_error=False)


def get_token_payload(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Dict[str, Any]:
    """
    Auth gate: read the bearer token from the Authorization header and return
    its payload.

    Raises:
        HTTPException: 401 when the header is missing, the token expired or is invalid.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        return decode_access_token(credentials.credentials)
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail={"message": "Token expired", "code": "TOKEN_EXPIRED"})
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_current_user(payload: Dict[str, Any] = Depends(get_token_payload), db: Session = Depends(get_db_session)) -> User:
    """
    Resolve the user behind a valid access token.

    Returns:
        User: The authenticated user.

    Raises:
        HTTPException: 401 if the user no longer exists.
    """
    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user
