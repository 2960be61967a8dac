from pydantic import BaseModel, ConfigDict, EmailStr
from typing import Optional
from datetime import datetime
from enum import Enum

class Role(str, Enum):
    TECHNICIAN = "technician"
    MANAGER = "manager"
    ADMIN = "admin"

class User(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    uid: str  # UID de Firebase Authentication
    email: EmailStr
    name: str
    phone: Optional[str] = None
    role: Role = Role.TECHNICIAN
    isActive: bool = True
    createdAt: Optional[datetime] = None
