# app/crud/transaction.py

from datetime import datetime, timedelta, timezone
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.transaction import Transaction

# --- Базовые CRUD-операции ---

def create_transaction(
    db: Session,
    user_id: int,
    amount: str,
    status: str,
    type: str,
    transaction_hash: str | None = None,
) -> Transaction:
    """
    Создает объект транзакции и добавляет его в сессию.
    Требует внешнего вызова db.commit().
    """
    transaction = Transaction(
        user_id=user_id,
        transaction_hash=transaction_hash,
        amount=amount,
        status=status,
        type=type,
    )
    db.add(transaction)
    return transaction

def get_transaction_by_hash(db: Session, transaction_hash: str) -> Transaction | None:
    return db.query(Transaction).filter(Transaction.transaction_hash == transaction_hash).first()

def get_transaction_by_payout_key(db: Session, payout_key: str) -> Transaction | None:
    return db.query(Transaction).filter(Transaction.payout_key == payout_key).first()

def get_user_transactions(db: Session, user_id: int) -> List[Transaction]:
    """Все транзакции пользователя (от новых к старым)."""
    return db.query(Transaction).filter(
        Transaction.user_id == user_id
    ).order_by(Transaction.id.desc()).all()

# --- Намерения на выплату наград ---

def create_reward_intent(
    db: Session,
    user_id: int,
    amount: int,
    tier: str,
    referred_user_id: int,
    source_event_id: str,
    payout_key: str,
) -> Transaction | None:
    """
    Фиксирует намерение выплатить награду ДО обращения к блокчейну.
    Коммитит сразу. Возвращает None, если выплата с таким payout_key уже есть:
    уникальный индекс сериализует конкурентные запросы.
    """
    intent = Transaction(
        user_id=user_id,
        amount=str(amount),
        status="pending",
        type="reward",
        tier=tier,
        referred_user_id=referred_user_id,
        source_event_id=source_event_id,
        payout_key=payout_key,
    )
    db.add(intent)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return None
    db.refresh(intent)
    return intent

def complete_transaction(db: Session, transaction: Transaction, transaction_hash: str) -> Transaction:
    transaction.transaction_hash = transaction_hash
    transaction.status = "completed"
    db.commit()
    db.refresh(transaction)
    return transaction

def mark_transaction_unknown(db: Session, transaction: Transaction, transaction_hash: str | None) -> Transaction:
    """Исход перевода неизвестен: оставляем запись (и payout_key) до сверки."""
    if transaction_hash:
        transaction.transaction_hash = transaction_hash
    transaction.status = "unknown"
    db.commit()
    db.refresh(transaction)
    return transaction

def mark_transaction_failed(db: Session, transaction: Transaction) -> Transaction:
    """
    Перевод точно не прошел. payout_key освобождается,
    чтобы ту же выплату можно было повторить.
    """
    transaction.status = "failed"
    transaction.payout_key = None
    db.commit()
    db.refresh(transaction)
    return transaction

def delete_transaction(db: Session, transaction: Transaction) -> None:
    db.delete(transaction)
    db.commit()

# --- Для сверки с блокчейном ---

def get_unsettled_reward_transactions(db: Session) -> List[Transaction]:
    """Награды в статусе 'pending'/'unknown', у которых есть хэш для сверки."""
    return db.query(Transaction).filter(
        Transaction.type == "reward",
        Transaction.status.in_(("pending", "unknown")),
        Transaction.transaction_hash.isnot(None),
    ).order_by(Transaction.id).all()

def get_stale_reward_intents(db: Session, older_than_minutes: int) -> List[Transaction]:
    """Зависшие намерения без хэша: процесс упал между записью и ответом шлюза."""
    threshold = datetime.now(timezone.utc) - timedelta(minutes=older_than_minutes)
    return db.query(Transaction).filter(
        Transaction.type == "reward",
        Transaction.status == "pending",
        Transaction.transaction_hash.is_(None),
        Transaction.created_at < threshold,
    ).order_by(Transaction.id).all()
