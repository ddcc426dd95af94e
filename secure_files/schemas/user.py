from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr


# Request body for registration; blank/missing fields are reported by the
# user directory so every caller gets the same message
class UserRegister(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


# Request body for login
class UserLogin(BaseModel):
    email: str
    password: str


# Response (never includes the password hash)
class UserOut(BaseModel):
    id: int
    username: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True


# Token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[str] = None
    user: Optional[UserOut] = None
