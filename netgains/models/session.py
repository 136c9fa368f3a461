import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, Float, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from netgains.database import Base


class PlaySession(Base):
    """A scheduled pickleball session. Only the columns invitations and
    discussions rely on are modelled here."""

    __tablename__ = "sessions"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    session_type = Column(String, nullable=True)
    location = Column(String, nullable=True)
    session_datetime = Column(DateTime(timezone=True), nullable=True)
    end_datetime = Column(DateTime(timezone=True), nullable=True)
    max_players = Column(Integer, nullable=True)
    allow_guests = Column(Boolean, default=False)
    dupr_min = Column(Float, nullable=True)
    dupr_max = Column(Float, nullable=True)
    visibility = Column(String, default="private")
    accepted_participants = Column(JSON().with_variant(JSONB, "postgresql"), default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
