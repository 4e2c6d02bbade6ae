"""
Authentication API endpoints
Signup, login, email verification, password reset and API key management
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging
import re

from smartdocs.database import get_db
from smartdocs.api.deps import get_current_user
from smartdocs.models.user import User
from smartdocs.models.api_key import APIKey
from smartdocs.models.email_token import EmailToken
from smartdocs.models.referral_reward import ReferralReward
from smartdocs.core.security import generate_api_key, generate_referral_code, hash_password, verify_password
from smartdocs.core.exceptions import http_400_bad_request, http_401_unauthorized, http_404_not_found
from smartdocs.core.plans import SubscriptionTier, get_token_limit
from smartdocs.middleware.rate_limiter import auth_rate_limit
from smartdocs.schemas.auth import (
    SignupRequest,
    SignupResponse,
    LoginRequest,
    LoginResponse,
    VerifyEmailRequest,
    EmailRequest,
    ResetPasswordRequest,
    MessageResponse,
    APIKeyResponse,
)
from smartdocs.services.email_service import EMAIL_VERIFICATION, PASSWORD_RESET, create_email_token
from smartdocs.tasks.email_tasks import queue_email, send_password_reset_email_task, send_verification_email_task
from smartdocs.utils.sanitize import mask_email
from smartdocs.utils.time import ensure_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

REFERRAL_SIGNUP_TOKENS = 10000
MIN_SIGNUP_PASSWORD = 6
MIN_RESET_PASSWORD = 8
KEY_PREFIX_LENGTH = 12

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

RESEND_MESSAGE = "If an unverified account with that email exists, we have sent a new verification link."
FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, we have sent a password reset link."


def issue_api_key(db: Session, user: User, name: str) -> str:
    """Store a new hashed key for the user and return the plain key (not committed)"""
    api_key, key_hash = generate_api_key()
    db.add(APIKey(
        user_id=user.id,
        key_hash=key_hash,
        key_prefix=api_key[:KEY_PREFIX_LENGTH],
        name=name,
    ))
    return api_key


def _unique_referral_code(db: Session) -> str:
    while True:
        code = generate_referral_code()
        if not db.query(User).filter(User.referral_code == code).first():
            return code


def _consume_verification_token(db: Session, token: Optional[str]) -> User:
    if not token:
        raise http_400_bad_request("Invalid token")

    email_token = db.query(EmailToken).filter(EmailToken.token == token).first()
    if not email_token:
        raise http_400_bad_request("Invalid token")
    if email_token.type != EMAIL_VERIFICATION:
        raise http_400_bad_request("Token type mismatch")
    if email_token.used:
        raise http_400_bad_request("Token has already been used")
    if ensure_utc(email_token.expires_at) < utcnow():
        raise http_400_bad_request("Token has expired")

    user = db.query(User).filter(User.id == email_token.user_id).first()
    if not user:
        raise http_400_bad_request("Invalid token")

    email_token.used = True
    user.email_verified = utcnow()
    db.commit()
    logger.info(f"Verified email for user {user.id}")
    return user


def _get_reset_token(db: Session, token: Optional[str]) -> EmailToken:
    email_token = db.query(EmailToken).filter(EmailToken.token == token).first() if token else None
    if not email_token:
        raise http_400_bad_request("Invalid or expired reset token")
    if email_token.type != PASSWORD_RESET:
        raise http_400_bad_request("Invalid token type")
    if email_token.used:
        raise http_400_bad_request("Reset token has already been used")
    if ensure_utc(email_token.expires_at) < utcnow():
        raise http_400_bad_request("Reset token has expired")
    return email_token


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
@auth_rate_limit()
async def signup(
    request: Request,
    payload: SignupRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user and generate API key

    **Important**: The API key is only returned once. Save it securely!

    A valid referral code credits the referrer with 10,000 tokens. The
    verification email is sent in the background.

    Args:
        payload: Name, email, password, optional referral code and locale
        db: Database session

    Returns:
        SignupResponse: User ID, email, API key and a confirmation message

    Raises:
        HTTPException: 400 on missing fields, short password or duplicate email
    """
    name = (payload.name or "").strip()
    email = (payload.email or "").strip().lower()
    password = payload.password or ""

    if not name or not email or not password:
        raise http_400_bad_request("Name, email and password are required")
    if not EMAIL_PATTERN.match(email):
        raise http_400_bad_request("Invalid email address")
    if len(password) < MIN_SIGNUP_PASSWORD:
        raise http_400_bad_request("Password must be at least 6 characters long")

    if db.query(User).filter(User.email == email).first():
        raise http_400_bad_request("User with this email already exists")

    referrer = None
    if payload.referral_code:
        referrer = db.query(User).filter(User.referral_code == payload.referral_code.strip().upper()).first()
        if not referrer:
            logger.info("Signup with unknown referral code ignored")

    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password),
        subscription_tier=SubscriptionTier.FREE.value,
        subscription_status="active",
        tokens_limit=get_token_limit(SubscriptionTier.FREE),
        tokens_used=0,
        language="ar" if payload.locale == "ar" else "en",
        referral_code=_unique_referral_code(db),
        referred_by_id=referrer.id if referrer else None,
    )
    db.add(user)
    db.flush()

    if referrer:
        referrer.total_referral_tokens = (referrer.total_referral_tokens or 0) + REFERRAL_SIGNUP_TOKENS
        db.add(ReferralReward(
            user_id=referrer.id,
            referred_id=user.id,
            type="signup",
            tokens=REFERRAL_SIGNUP_TOKENS,
            description=f"Referral signup: {mask_email(email)}",
            claimed=True,
        ))

    api_key = issue_api_key(db, user, "signup")
    email_token = create_email_token(db, user, EMAIL_VERIFICATION)
    db.commit()
    db.refresh(user)

    queue_email(send_verification_email_task, user.email, user.name, email_token.token, payload.locale)
    logger.info(f"New user signed up: {user.id}")

    return SignupResponse(
        user_id=user.id,
        email=user.email,
        api_key=api_key,  # Only returned once!
        message="Account created successfully. Please check your email to verify your account.",
    )


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Exchange email and password for a new API key

    Raises:
        HTTPException: 401 on bad credentials or an inactive account
    """
    user = db.query(User).filter(User.email == payload.email.strip().lower()).first()

    if not user or not verify_password(payload.password, user.hashed_password):
        raise http_401_unauthorized("Invalid email or password")
    if not user.is_active:
        raise http_401_unauthorized("User account is inactive")

    api_key = issue_api_key(db, user, "login")
    db.commit()

    return LoginResponse(user_id=user.id, email=user.email, api_key=api_key)


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    payload: VerifyEmailRequest,
    db: Session = Depends(get_db)
):
    """
    Mark the email address behind a verification token as verified

    Raises:
        HTTPException: 400 for unknown, mismatched, used or expired tokens
    """
    _consume_verification_token(db, payload.token)
    return MessageResponse(message="Email verified successfully")


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email_link(
    token: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Same as POST /verify-email, for links opened straight from the email"""
    _consume_verification_token(db, token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
@auth_rate_limit()
async def resend_verification(
    request: Request,
    payload: EmailRequest,
    db: Session = Depends(get_db)
):
    """
    Send a fresh verification link

    The answer is the same whether or not the account exists.
    """
    email = (payload.email or "").strip().lower()
    if not email:
        raise http_400_bad_request("Email is required")

    user = db.query(User).filter(User.email == email).first()
    if user and not user.email_verified:
        email_token = create_email_token(db, user, EMAIL_VERIFICATION)
        db.commit()
        queue_email(send_verification_email_task, user.email, user.name, email_token.token, payload.locale)

    return MessageResponse(message=RESEND_MESSAGE)


@router.post("/forgot-password", response_model=MessageResponse)
@auth_rate_limit()
async def forgot_password(
    request: Request,
    payload: EmailRequest,
    db: Session = Depends(get_db)
):
    """
    Start a password reset

    The answer is the same whether or not the account exists, so the
    endpoint cannot be used to probe for registered addresses.
    """
    email = (payload.email or "").strip().lower()
    if not email:
        raise http_400_bad_request("Email is required")

    user = db.query(User).filter(User.email == email).first()
    if user:
        email_token = create_email_token(db, user, PASSWORD_RESET)
        db.commit()
        queue_email(send_password_reset_email_task, user.email, user.name, email_token.token, payload.locale)
        logger.info(f"Password reset requested for {mask_email(email)}")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
@auth_rate_limit()
async def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """
    Set a new password with a reset token

    The password change and marking the token used are committed together.

    Raises:
        HTTPException: 400 for missing fields, short passwords and bad tokens
    """
    if not payload.token or not payload.password:
        raise http_400_bad_request("Token and password are required")
    if len(payload.password) < MIN_RESET_PASSWORD:
        raise http_400_bad_request("Password must be at least 8 characters long")

    email_token = _get_reset_token(db, payload.token)
    user = db.query(User).filter(User.id == email_token.user_id).first()
    if not user:
        raise http_400_bad_request("Invalid or expired reset token")

    try:
        user.hashed_password = hash_password(payload.password)
        email_token.used = True
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Password reset completed for user {user.id}")
    return MessageResponse(message="Password has been reset successfully")


@router.get("/reset-password")
async def validate_reset_token(
    token: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Check a reset token without consuming it"""
    email_token = _get_reset_token(db, token)
    return {"valid": True, "email": email_token.email}


@router.get("/api-keys", response_model=List[APIKeyResponse])
async def list_api_keys(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the caller's API keys (prefix and timestamps only)"""
    return (
        db.query(APIKey)
        .filter(APIKey.user_id == current_user.id)
        .order_by(APIKey.created_at.desc())
        .all()
    )


@router.delete("/api-keys/{key_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_api_key(
    key_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Revoke an API key

    Raises:
        HTTPException: 404 if the key does not belong to the caller
    """
    api_key = db.query(APIKey).filter(APIKey.id == key_id, APIKey.user_id == current_user.id).first()
    if not api_key:
        raise http_404_not_found("API key not found")

    db.delete(api_key)
    db.commit()
    return None
