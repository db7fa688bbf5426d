# app/models/transaction.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.db.session import Base

class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True, index=True)
    # Получатель средств
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # У намерения на выплату хэша еще нет, поэтому nullable
    transaction_hash = Column(String, unique=True, nullable=True)
    # Сумма в минимальных единицах токена, строкой - без потерь точности
    amount = Column(String, nullable=False)

    # 'pending', 'completed', 'failed', 'unknown'
    status = Column(String, nullable=False, default="pending")
    # 'deposit', 'withdrawal', 'transfer', 'reward'
    type = Column(String, nullable=False)

    # --- Только для наград ---
    # 'direct' или 'root'
    tier = Column(String, nullable=True)
    referred_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    source_event_id = Column(String, nullable=True)
    # "{referred_user_id}:{source_event_id}:{tier}" - не дает заплатить дважды
    payout_key = Column(String, unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
