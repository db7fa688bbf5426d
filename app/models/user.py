# app/models/user.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from .referral import Referral
from .core_team import CoreTeamMember
from app.db.session import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False) # bcrypt-хэш, не сам пароль

    country = Column(String, nullable=True)
    state = Column(String, nullable=True)
    city = Column(String, nullable=True)
    dob = Column(String, nullable=True)
    address = Column(String, nullable=True)
    zip_code = Column(String, nullable=True)
    ibi_name = Column(String, nullable=True)
    ibi_id = Column(String, nullable=True)
    role = Column(String, default="user", nullable=False, server_default="user")

    # Подтверждение email одноразовым кодом
    otp = Column(String, nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False, server_default="false")

    referral_code = Column(String, unique=True, index=True, nullable=True)
    # Кошелек для получения наград, задается после регистрации
    wallet_address = Column(String, nullable=True)

    document_id = Column(String, nullable=True)
    document_front = Column(String, nullable=True)
    document_back = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Связи для реферальной системы
    # Кто пригласил этого пользователя
    referrer_link = relationship("Referral", foreign_keys="Referral.referred_id", back_populates="referred", uselist=False)
    # Кого пригласил этот пользователь
    referrals = relationship("Referral", foreign_keys="Referral.referrer_id", back_populates="referrer")
    core_team_membership = relationship("CoreTeamMember", back_populates="user", uselist=False)
