from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


# ---------------------------------------------------
# USERS
# ---------------------------------------------------

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None
    role: str


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)


class UserOut(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None

    @classmethod
    def from_user(cls, user):
        return cls(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            role=user.role_name,
            is_active=bool(user.is_active),
            last_login=user.last_login,
        )


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------
# COMPANIES
# ---------------------------------------------------

class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    tax_id: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    tax_id: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None


class CompanyOut(CompanyCreate):
    id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------
# LOCATIONS
# ---------------------------------------------------

class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None
    company_id: int


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    company_id: Optional[int] = None


class LocationOut(LocationCreate):
    id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
