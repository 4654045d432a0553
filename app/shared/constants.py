from enum import Enum


class Role(str, Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"
    PENDING = "pending"


class LinkStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
