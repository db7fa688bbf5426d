# app/services/auth.py

import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import HTTPException, status
from jose import jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ReferralCycleError
from app.crud import user as crud_user
from app.models.user import User
from app.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    SignupRequest,
    UserSummary,
    VerifyOtpRequest,
)
from app.services import mailer
from app.services import referral as referral_service

logger = logging.getLogger(__name__)


# --- Примитивы: пароли, токены, коды ---

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=10)).decode()

def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode(), hashed.encode())

def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Создает JWT токен."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def generate_otp() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(settings.OTP_LENGTH))

def get_otp_expiration() -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

def generate_referral_code(db: Session) -> str:
    new_code = secrets.token_urlsafe(8)
    # Коллизия крайне маловероятна, но проверяем
    while crud_user.get_user_by_referral_code(db, code=new_code):
        new_code = secrets.token_urlsafe(8)
    return new_code

def _as_aware(value: datetime) -> datetime:
    # SQLite возвращает naive datetime даже для timezone=True
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

def _get_user_or_404(db: Session, email: str) -> User:
    user = crud_user.get_user_by_email(db, email=email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User does not exist, please sign up")
    return user


# --- Сценарии ---

async def signup(db: Session, data: SignupRequest) -> User:
    """
    Регистрирует пользователя, привязывает к рефереру (если передан код)
    и отправляет OTP на почту.
    """
    if crud_user.get_user_by_email(db, email=data.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists, please login")

    otp = generate_otp()
    fields = data.model_dump(exclude={"password", "referral_code"})
    new_user = crud_user.create_user(
        db,
        **fields,
        password=hash_password(data.password),
        otp=otp,
        otp_expires_at=get_otp_expiration(),
        referral_code=generate_referral_code(db),
    )
    logger.info(f"New user {new_user.id} signed up.")

    if data.referral_code:
        referrer = crud_user.get_user_by_referral_code(db, code=data.referral_code)
        if referrer:
            try:
                referral_service.link_referral(db, referrer=referrer, referred=new_user)
            except ReferralCycleError:
                logger.warning(f"Referral code of user {referrer.id} would create a cycle for user {new_user.id}. Ignored.")
        else:
            logger.info(f"Unknown referral code '{data.referral_code}' used by user {new_user.id}. Ignored.")

    await mailer.send_otp_email(new_user.first_name, new_user.email, otp)
    return new_user


def verify_otp(db: Session, data: VerifyOtpRequest) -> User:
    user = _get_user_or_404(db, data.email)

    if not user.otp or not user.otp_expires_at or datetime.now(timezone.utc) > _as_aware(user.otp_expires_at):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP is expired or invalid. Please request a new one.")

    if not hmac.compare_digest(data.otp, user.otp):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP. Please try again.")

    logger.info(f"User {user.id} verified email.")
    return crud_user.mark_verified(db, user)


async def resend_otp(db: Session, email: str) -> None:
    user = _get_user_or_404(db, email)
    otp = generate_otp()
    crud_user.set_otp(db, user, otp=otp, expires_at=get_otp_expiration())
    await mailer.send_otp_email(user.first_name, user.email, otp)
    logger.info(f"OTP re-sent to user {user.id}.")


def login(db: Session, data: LoginRequest) -> LoginResponse:
    user = crud_user.get_user_by_email(db, email=data.email)
    if not user or not verify_password(data.password, user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid login credentials")

    if not user.is_verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Please verify your account first")

    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    logger.info(f"User {user.id} logged in.")
    return LoginResponse(user=UserSummary.model_validate(user), token=token)


def change_password(db: Session, user: User, data: ChangePasswordRequest) -> None:
    if not verify_password(data.old_password, user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect old password")

    if verify_password(data.new_password, user.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New password cannot be the same as the old password")

    crud_user.update_password(db, user, hash_password(data.new_password))
    logger.info(f"User {user.id} changed password.")
