# app/routers/transaction.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.dependencies import get_current_user, get_db
from app.models.user import User
from app.schemas.transaction import Transaction, TransactionCreate
from app.services import user as user_service

router = APIRouter(prefix="/transactions")


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def add_transaction(
    data: TransactionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return user_service.add_transaction(db, current_user, data)


@router.get("/me", response_model=List[Transaction])
def get_my_transactions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """История транзакций пользователя, включая полученные награды."""
    return user_service.get_user_transactions(db, current_user)
