# app/crud/referral.py
from sqlalchemy.orm import Session, joinedload
from app.models.referral import Referral

def create_referral(db: Session, referrer_id: int, referred_id: int) -> Referral:
    """
    Создает новую реферальную связь.
    Проверку на циклы делает сервис (app.services.referral.link_referral).
    """
    db_referral = Referral(referrer_id=referrer_id, referred_id=referred_id)
    db.add(db_referral)
    db.commit()
    db.refresh(db_referral)
    return db_referral

def get_referral_by_referred_id(db: Session, referred_id: int) -> Referral | None:
    """Находит реферальную связь по ID приглашенного пользователя."""
    return db.query(Referral).filter(Referral.referred_id == referred_id).first()

def get_referrals(db: Session, referrer_id: int | None = None) -> list[Referral]:
    """Все связи, либо только связи конкретного реферера."""
    query = db.query(Referral).options(
        joinedload(Referral.referrer), joinedload(Referral.referred)
    )
    if referrer_id is not None:
        query = query.filter(Referral.referrer_id == referrer_id)
    return query.order_by(Referral.id).all()
