# backend/schemas/user.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from schemas.common import ORMBase

# Shared properties for user models
class UserBase(ORMBase):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    name: str
    created_at: Optional[datetime] = None

# Compact user snapshot embedded in movement responses
class UserSnapshot(ORMBase):
    id: int
    name: str
    email: str

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
