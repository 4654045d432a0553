from datetime import datetime, timezone
from typing import List, Optional

from beanie import Document, Indexed, Insert, Replace, Save, Update, before_event
from pydantic import BaseModel, EmailStr, Field

from app.shared.constants import Role, UserStatus


class Profile(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    specialization: Optional[str] = None
    date_of_birth: Optional[str] = None


class User(Document):
    """Patient or doctor account."""

    email: Indexed(EmailStr, unique=True)  # type: ignore
    hashed_password: str
    status: UserStatus = UserStatus.ACTIVE
    roles: List[Role] = [Role.PATIENT]
    profile: Profile = Field(default_factory=Profile)

    last_login_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @before_event(Insert, Replace, Save, Update)
    def update_updated_at(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    @property
    def display_name(self) -> str:
        return self.profile.full_name or str(self.email).split("@", 1)[0]

    class Settings:
        name = "users"
