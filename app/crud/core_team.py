# app/crud/core_team.py
from sqlalchemy.orm import Session
from app.models.core_team import CoreTeamMember

def get_core_team_membership(db: Session, user_id: int) -> CoreTeamMember | None:
    return db.query(CoreTeamMember).filter(CoreTeamMember.user_id == user_id).first()

def add_core_team_member(db: Session, user_id: int) -> CoreTeamMember:
    """Идемпотентно: повторный вызов вернет существующую запись."""
    membership = get_core_team_membership(db, user_id)
    if membership:
        return membership
    membership = CoreTeamMember(user_id=user_id)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership

def remove_core_team_member(db: Session, user_id: int) -> bool:
    deleted = db.query(CoreTeamMember).filter(CoreTeamMember.user_id == user_id).delete()
    db.commit()
    return bool(deleted)
