# app/models/core_team.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from app.db.session import Base

class CoreTeamMember(Base):
    """Участник core team получает бонус, если стоит в корне реферальной цепочки."""
    __tablename__ = "core_team_members"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="core_team_membership")
