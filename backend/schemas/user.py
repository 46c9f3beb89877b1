# backend/schemas/user.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["admin", "staff"]

# Shared properties for user models
class UserBase(BaseModel):
    username: str = Field(min_length=3, max_length=50)

# Schema for user authentication credentials
class UserLogin(BaseModel):
    username: str
    password: str

# Schema for account creation by an administrator
class UserCreate(UserBase):
    password: str = Field(min_length=6)
    role: Role = "staff"

# Schema for partial account edits
class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[Role] = None

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
