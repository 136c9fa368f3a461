from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from netgains.database import Base


class User(Base):
    __tablename__ = "users"

    # Identity provider uid
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=True)
    phone = Column(String, index=True, nullable=True)
    email = Column(String, index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    device_tokens = relationship("DeviceToken", back_populates="user", lazy="selectin")
    notifications = relationship("Notification", back_populates="user", lazy="noload")
