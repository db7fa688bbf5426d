# app/schemas/transaction.py
from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.user import CamelModel


class TransactionCreate(CamelModel):
    """Пользователь сам сообщает о транзакции, сделанной из своего кошелька."""
    transaction_hash: str = Field(..., min_length=1)
    amount: str = Field(..., min_length=1)
    status: Literal["pending", "completed", "failed"]
    type: Literal["deposit", "withdrawal", "transfer"]

class Transaction(CamelModel):
    id: int
    user_id: int
    transaction_hash: str | None = None
    amount: str
    status: str
    type: str
    tier: str | None = None
    created_at: datetime | None = None
