from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime

from app.models.user import Role

class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: str
    phone: Optional[str] = None
    role: Role = Role.TECHNICIAN
    isActive: bool = True

class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    isActive: Optional[bool] = None

class UserOut(BaseModel):
    id: str
    uid: Optional[str] = None
    email: EmailStr
    name: str
    phone: Optional[str] = None
    role: Role
    isActive: bool = True
    createdAt: Optional[datetime] = None
