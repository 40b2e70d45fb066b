"""
User model for account-level identity.
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from settleup.db.base import BaseModel


class User(BaseModel):
    """User account that participants can be linked to."""
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    participants = relationship("Participant", back_populates="user")
