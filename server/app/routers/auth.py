import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.baas import AuthGateway, BaaSError, get_auth_gateway
from app.core.config import settings
from app.core.db import get_db
from app.schemas.auth import (
    LoginRequest,
    MessageResponse,
    PasswordResetRequest,
    PasswordStrengthRequest,
    PasswordStrengthResponse,
    SignUpRequest,
    SignUpResponse,
    TokenResponse,
)
from app.services.accounts import ensure_profile, evaluate_password, validate_password_strength
from app.services.reconciliation import sync_specific_user
from app.services.roles import add_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

DUPLICATE_USER_CODES = {"user_already_exists", "email_exists", "422"}


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignUpRequest,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> SignUpResponse:
    try:
        validate_password_strength(payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        auth_user = gateway.sign_up(payload.email, payload.password, full_name=payload.full_name)
    except BaaSError as exc:
        if exc.code in DUPLICATE_USER_CODES:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An account with this email already exists") from exc
        raise

    profile, _ = ensure_profile(db, auth_user, full_name=payload.full_name)
    if payload.phone:
        profile.phone = payload.phone
    if payload.church_unit:
        profile.church_unit = payload.church_unit
    add_role(db, profile.id, "user")
    db.commit()

    # Member creation is best effort; the account exists either way.
    result = sync_specific_user(db, profile.email or payload.email)
    if not result.success:
        logger.warning("member sync after signup failed", extra={"email": payload.email, "reason": result.message})

    return SignUpResponse(
        user_id=profile.id,
        email=profile.email or payload.email,
        member_synced=result.success,
        message="Account created. Please check your email to confirm your address.",
    )


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> TokenResponse:
    try:
        session = gateway.sign_in(payload.email, payload.password)
    except BaaSError as exc:
        if exc.code in {"invalid_credentials", "400"}:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials") from exc
        raise

    ensure_profile(db, session.user)
    db.commit()

    return TokenResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user_id=session.user.id,
        email=session.user.email,
    )


@router.post("/password-reset", response_model=MessageResponse)
def request_password_reset(
    payload: PasswordResetRequest,
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> MessageResponse:
    gateway.send_password_reset(payload.email, settings.PASSWORD_RESET_REDIRECT_URL)
    return MessageResponse(message="If an account exists for that email, a reset link has been sent.")


@router.post("/password-strength", response_model=PasswordStrengthResponse)
def password_strength(payload: PasswordStrengthRequest) -> PasswordStrengthResponse:
    check = evaluate_password(payload.password)
    return PasswordStrengthResponse(
        is_valid=check.is_valid,
        strength=check.strength,
        message=check.message,
        validations=check.validations,
    )
