from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from jose import JWTError, ExpiredSignatureError
from datetime import timedelta
from typing import Any, Dict, Optional
import logging

import config
from models.models import User, get_current_time, as_utc
from utils.security import (
    hash_password,
    verify_password,
    generate_verification_token,
    create_token_pair,
    decode_refresh_token,
    get_token_payload,
    get_current_user,
)
from utils.email import send_email
from utils.response import create_response
from dataBase import get_db_session

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


def _public_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def _issue_tokens(user: User, db: Session) -> Dict[str, str]:
    """
    Issue a new access/refresh pair and store the refresh token, replacing
    whatever token the user had before.
    """
    tokens = create_token_pair(user)
    user.refresh_token = tokens["refresh_token"]
    db.commit()
    return tokens


@router.post("/register")
def register_user(user: UserCreate, db: Session = Depends(get_db_session)):
    """
    Register a new, unverified user and send the verification e-mail.

    - **email**: E-mail address, must not be registered yet.
    - **password**: Password.
    - **first_name**: First name.
    - **last_name**: Last name.

    **Responses**:
    - **201 Created**: `{"userId": 1}`
    - **400 Bad Request**: E-mail already registered or missing fields.
    """
    email = user.email.lower()
    logger.info("Registering user %s", email)

    if find_user_by_email(db, email):
        logger.warning("E-mail already registered: %s", email)
        return create_response("error", "Email already registered", status_code=400)

    verification_token = generate_verification_token()
    new_user = User(
        email=email,
        password_hash=hash_password(user.password),
        first_name=user.first_name.strip(),
        last_name=user.last_name.strip(),
        is_verified=False,
        verification_token=verification_token,
    )

    try:
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
    except IntegrityError:
        db.rollback()
        logger.warning("E-mail registered concurrently: %s", email)
        return create_response("error", "Email already registered", status_code=400)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error registering user %s: %s", email, e)
        raise HTTPException(status_code=500, detail="Error registering user")

    # Registration stands even if the e-mail cannot be delivered.
    if not send_email(new_user.email, verification_token, 'verification'):
        logger.warning("Verification e-mail for user %s was not delivered", new_user.id)

    return create_response(
        "success",
        "Registration successful. Please check your email for verification.",
        {"userId": new_user.id},
        status_code=201
    )


@router.post("/login")
def login(request: LoginRequest, db: Session = Depends(get_db_session)):
    """
    Authenticate with e-mail and password.

    - **email**: E-mail address.
    - **password**: Password.

    **Responses**:
    - **200 OK**: `{"access_token": ..., "refresh_token": ..., "token_type": "bearer", "user": {...}}`
    - **401 Unauthorized**: Invalid credentials, or the e-mail has not been verified.
    """
    user = find_user_by_email(db, request.email)

    if not user or not verify_password(request.password, user.password_hash):
        logger.warning("Failed login for %s", request.email)
        return create_response("error", "Invalid credentials", status_code=401)

    if not user.is_verified:
        return create_response("error", "Please verify your email first", {"code": "UNVERIFIED"}, status_code=401)

    try:
        tokens = _issue_tokens(user, db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error during login for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error during login")

    logger.info("User %s logged in", user.id)
    return create_response("success", "Login successful", {**tokens, "user": _public_user(user)})


@router.get("/verify-email/{token}")
def verify_email(token: str, db: Session = Depends(get_db_session)):
    """
    Confirm the e-mail address of a user with the token sent at registration.
    The token is cleared, so it cannot be used twice.

    **Responses**:
    - **200 OK**: E-mail verified.
    - **400 Bad Request**: Unknown or already used token.
    """
    user = db.query(User).filter(User.verification_token == token).first()

    if not user:
        return create_response("error", "Invalid verification token", status_code=400)

    try:
        user.is_verified = True
        user.verification_token = None
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error verifying e-mail for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error verifying email")

    logger.info("User %s verified their e-mail", user.id)
    return create_response("success", "Email verified successfully")


@router.post("/forgot-password")
def forgot_password(request: PasswordResetRequest, db: Session = Depends(get_db_session)):
    """
    Start the password reset flow. The answer is the same whether or not the
    e-mail belongs to an account.

    - **email**: E-mail address of the account.
    """
    generic_message = "If the email is registered, password reset instructions have been sent"
    user = find_user_by_email(db, request.email)

    if not user:
        logger.info("Password reset requested for unknown e-mail")
        return create_response("success", generic_message)

    reset_token = generate_verification_token()
    try:
        user.reset_token = reset_token
        user.reset_token_expiry = get_current_time() + timedelta(minutes=config.RESET_TOKEN_EXPIRE_MINUTES)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error storing reset token for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error processing password reset")

    send_email(user.email, reset_token, 'reset')
    logger.info("Password reset token issued for user %s", user.id)
    return create_response("success", generic_message)


@router.post("/reset-password")
def reset_password(reset: PasswordReset, db: Session = Depends(get_db_session)):
    """
    Set a new password using a reset token.

    - **token**: Reset token received by e-mail.
    - **newPassword**: The new password.

    **Responses**:
    - **200 OK**: Password changed.
    - **400 Bad Request**: Unknown or expired token.
    """
    user = db.query(User).filter(User.reset_token == reset.token).first()

    if not user or not user.reset_token_expiry or as_utc(user.reset_token_expiry) <= get_current_time():
        logger.warning("Invalid or expired reset token used")
        return create_response("error", "Invalid or expired reset token", status_code=400)

    try:
        user.password_hash = hash_password(reset.newPassword)
        user.reset_token = None
        user.reset_token_expiry = None
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error resetting password for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error resetting password")

    logger.info("Password reset for user %s", user.id)
    return create_response("success", "Password reset successful")


@router.post("/refresh-token")
def refresh_token(request: RefreshRequest, db: Session = Depends(get_db_session)):
    """
    Exchange a refresh token for a new token pair. The presented token is
    replaced by the new one and cannot be used again.

    - **refresh_token**: The refresh token received at login or on the last refresh.

    **Responses**:
    - **200 OK**: `{"access_token": ..., "refresh_token": ..., "token_type": "bearer"}`
    - **401 Unauthorized**: Expired, invalid or already rotated token.
    """
    try:
        payload = decode_refresh_token(request.refresh_token)
    except ExpiredSignatureError:
        return create_response("error", "Refresh token expired", {"code": "TOKEN_EXPIRED"}, status_code=401)
    except JWTError:
        return create_response("error", "Invalid refresh token", status_code=401)

    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user or user.refresh_token != request.refresh_token:
        logger.warning("Refresh token rejected for subject %s", payload["sub"])
        return create_response("error", "Invalid refresh token", status_code=401)

    try:
        tokens = _issue_tokens(user, db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error rotating refresh token for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error refreshing token")

    return create_response("success", "Token refreshed", tokens)


@router.post("/logout")
def logout(user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    """
    Close the session of the authenticated user by clearing the stored
    refresh token. Access tokens already issued stay valid until they expire.
    """
    try:
        user.refresh_token = None
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error during logout for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error during logout")

    logger.info("User %s logged out", user.id)
    return create_response("success", "Logged out successfully")


@router.get("/me")
def get_me(payload: Dict[str, Any] = Depends(get_token_payload), db: Session = Depends(get_db_session)):
    """
    Return the profile of the authenticated user, without any secret fields.

    **Responses**:
    - **200 OK**: The user.
    - **404 Not Found**: The user behind the token no longer exists.
    """
    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user:
        return create_response("error", "User not found", status_code=404)

    return create_response("success", "User retrieved", {"user": user.to_dict()})


@router.put("/change-password")
def change_password(change: PasswordChange, user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    """
    Change the password of the authenticated user.

    - **current_password**: The current password.
    - **new_password**: The new password.
    """
    if not verify_password(change.current_password, user.password_hash):
        return create_response("error", "Invalid credentials", status_code=401)

    try:
        user.password_hash = hash_password(change.new_password)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error changing password for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error changing password")

    return create_response("success", "Password changed successfully")
