from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from app.shared.constants import Role, UserStatus
from app.shared.schemas import CamelModel, PyObjectId


class ProfileBase(CamelModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    specialization: Optional[str] = None
    date_of_birth: Optional[str] = None


class UserBase(CamelModel):
    email: EmailStr
    roles: List[Role] = [Role.PATIENT]
    profile: ProfileBase = Field(default_factory=ProfileBase)


class UserCreate(UserBase):
    password: str = Field(..., max_length=128, min_length=8)

    @field_validator("roles")
    @classmethod
    def validate_roles(cls, v: List[Role]) -> List[Role]:
        if Role.ADMIN in v:
            raise ValueError("Cannot assign ADMIN role during signup")
        if not v:
            raise ValueError("At least one role is required")
        return v


class UserResponse(UserBase):
    id: PyObjectId
    status: UserStatus
    created_at: datetime
    last_login_at: Optional[datetime] = None
