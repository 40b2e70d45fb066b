"""
Pydantic schemas for User entity.
"""
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class UserCreate(BaseModel):
    """Schema for registering an account that participants can be linked to."""
    username: str
    email: Optional[EmailStr] = None


class UserResponse(BaseModel):
    """Schema for user response."""
    id: int
    username: str
    email: Optional[EmailStr] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
