# app/services/user.py
import logging
from typing import List

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.crud import transaction as crud_transaction
from app.crud import user as crud_user
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.transaction import TransactionCreate
from app.schemas.user import UserProfile
from app.services import storage as storage_service

logger = logging.getLogger(__name__)


def get_user_profile(current_user: User) -> UserProfile:
    """Профиль пользователя вместе с публичными ссылками на документы."""
    profile = UserProfile.model_validate(current_user)
    return profile.model_copy(update={
        "document_front_image": storage_service.build_public_url(current_user.document_front),
        "document_back_image": storage_service.build_public_url(current_user.document_back),
    })


def update_wallet_address(db: Session, current_user: User, address: str) -> User:
    logger.info(f"User {current_user.id} set wallet address to {address}.")
    return crud_user.update_wallet_address(db, current_user, address)


async def upload_documents(db: Session, current_user: User, document_id: str, files: List[UploadFile]) -> User:
    """Ожидает ровно два файла: лицевую и обратную сторону документа."""
    if len(files) != 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Exactly two files (front and back) are required.",
        )
    front = await storage_service.save_upload(files[0])
    back = await storage_service.save_upload(files[1])
    logger.info(f"User {current_user.id} uploaded documents for '{document_id}'.")
    return crud_user.update_documents(db, current_user, document_id=document_id, front=front, back=back)


def add_transaction(db: Session, current_user: User, data: TransactionCreate) -> Transaction:
    if crud_transaction.get_transaction_by_hash(db, data.transaction_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Transaction already exists")

    transaction = crud_transaction.create_transaction(
        db,
        user_id=current_user.id,
        transaction_hash=data.transaction_hash,
        amount=data.amount,
        status=data.status,
        type=data.type,
    )
    db.commit()
    db.refresh(transaction)
    logger.info(f"User {current_user.id} recorded {data.type} transaction {data.transaction_hash}.")
    return transaction


def get_user_transactions(db: Session, current_user: User) -> List[Transaction]:
    return crud_transaction.get_user_transactions(db, current_user.id)
