from typing import List

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from app.core import security
from app.core.config import settings
from app.modules.users.models import User
from app.shared.constants import Role, UserStatus

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/login/access-token",
    auto_error=False,
)


async def get_current_user(token: str | None = Depends(reusable_oauth2)) -> User:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user_id = security.decode_subject(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        ) from None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )

    user: User | None = await User.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.status != UserStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


class RoleChecker:
    def __init__(self, allowed_roles: List[Role], allow_admin: bool = True) -> None:
        self.allowed_roles = allowed_roles
        self.allow_admin = allow_admin

    def __call__(self, user: User = Depends(get_current_user)) -> User:
        if self.allow_admin and Role.ADMIN in user.roles:
            return user

        if set(user.roles).intersection(self.allowed_roles):
            return user

        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )


require_doctor = RoleChecker([Role.DOCTOR])
require_patient = RoleChecker([Role.PATIENT], allow_admin=False)
