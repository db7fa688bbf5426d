# app/routers/user.py
from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from app.dependencies import get_current_user, get_db
from app.models.user import User
from app.schemas.user import MessageResponse, UserProfile, WalletAddressUpdate
from app.services import user as user_service

router = APIRouter()


@router.get("/users/me", response_model=UserProfile)
def read_users_me(current_user: User = Depends(get_current_user)):
    return user_service.get_user_profile(current_user)


@router.put("/users/me/wallet-address", response_model=UserProfile)
def update_wallet_address(
    data: WalletAddressUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Привязка кошелька, на который будут приходить реферальные награды.
    """
    user = user_service.update_wallet_address(db, current_user, data.address)
    return user_service.get_user_profile(user)


@router.post("/users/me/documents", response_model=MessageResponse)
async def upload_documents(
    document_id: str = Form(..., min_length=2, max_length=50),
    files: List[UploadFile] = File(..., description="Лицевая и обратная сторона документа"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    await user_service.upload_documents(db, current_user, document_id, files)
    return MessageResponse(message="Documents uploaded successfully")
