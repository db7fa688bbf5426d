# app/routers/auth.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.limiter import limiter
from app.dependencies import get_current_user, get_db
from app.models.user import User
from app.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResendOtpRequest,
    SignupRequest,
    VerifyOtpRequest,
)
from app.services import auth as auth_service

router = APIRouter(prefix="/auth")


@router.get("/")
def read_root():
    return {"status": "ok"}


@router.post("/signup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def signup(request: Request, data: SignupRequest, db: Session = Depends(get_db)):
    """
    Регистрация. Код подтверждения уходит на почту.
    """
    await auth_service.signup(db, data)
    return MessageResponse(message="The OTP has been sent to your email address. Please check your inbox")


@router.post("/verify-otp", response_model=MessageResponse)
@limiter.limit("10/minute")
def verify_otp(request: Request, data: VerifyOtpRequest, db: Session = Depends(get_db)):
    auth_service.verify_otp(db, data)
    return MessageResponse(message="OTP verified successfully. Your account is now active.")


@router.post("/resend-otp", response_model=MessageResponse)
@limiter.limit("3/minute")
async def resend_otp(request: Request, data: ResendOtpRequest, db: Session = Depends(get_db)):
    await auth_service.resend_otp(db, data.email)
    return MessageResponse(message="OTP sent successfully")


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
def login(request: Request, data: LoginRequest, db: Session = Depends(get_db)):
    """
    Вход по email и паролю. Возвращает JWT.
    Защищено лимитом в 5 запросов в минуту с одного IP.
    """
    return auth_service.login(db, data)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    auth_service.change_password(db, current_user, data)
    return MessageResponse(message="Password changed successfully")
