# app/crud/user.py
from datetime import datetime
from sqlalchemy.orm import Session
from app.models.user import User


def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Получает пользователя по его первичному ключу."""
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()

def get_user_by_referral_code(db: Session, code: str) -> User | None:
    return db.query(User).filter(User.referral_code == code).first()

def create_user(db: Session, **fields) -> User:
    """Создает нового пользователя. Поля соответствуют колонкам модели User."""
    db_user = User(**fields)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def set_otp(db: Session, user: User, otp: str | None, expires_at: datetime | None) -> User:
    user.otp = otp
    user.otp_expires_at = expires_at
    db.commit()
    db.refresh(user)
    return user

def mark_verified(db: Session, user: User) -> User:
    """Подтверждает аккаунт и сбрасывает OTP."""
    user.is_verified = True
    user.otp = None
    user.otp_expires_at = None
    db.commit()
    db.refresh(user)
    return user

def update_password(db: Session, user: User, hashed_password: str) -> User:
    user.password = hashed_password
    db.commit()
    db.refresh(user)
    return user

def update_wallet_address(db: Session, user: User, wallet_address: str) -> User:
    user.wallet_address = wallet_address
    db.commit()
    db.refresh(user)
    return user

def update_documents(db: Session, user: User, document_id: str, front: str, back: str) -> User:
    user.document_id = document_id
    user.document_front = front
    user.document_back = back
    db.commit()
    db.refresh(user)
    return user
