from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from app.core import security
from app.modules.notifications import builders
from app.modules.notifications.service import NotificationService
from app.modules.users.models import User
from app.modules.users.schemas import UserCreate
from app.modules.users.service import UserService
from app.shared.constants import Role, UserStatus
from app.shared.exceptions import PersistenceError

log = structlog.get_logger()


class AuthService:
    def __init__(self) -> None:
        self.user_service = UserService()
        self.notifications = NotificationService()

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        user = await self.user_service.get_by_email(email)
        if not user:
            log.warning("auth.login_failed", email=email, reason="user_not_found")
            return None

        if user.status != UserStatus.ACTIVE:
            log.warning("auth.login_failed", email=email, reason="inactive", status=user.status)
            return None

        if not security.verify_password(password, user.hashed_password):
            log.warning("auth.login_failed", email=email, reason="bad_password")
            return None

        user.last_login_at = datetime.now(timezone.utc)
        await user.save()
        log.info("auth.login_success", email=email, user_id=str(user.id))
        return user

    async def signup(self, user_in: UserCreate) -> User:
        """Create the account and greet the new user with a welcome notification."""
        user = await self.user_service.create(user_in)
        try:
            await self.notifications.persist(
                builders.welcome_notification(
                    str(user.id), user.display_name, is_doctor=Role.DOCTOR in user.roles
                )
            )
        except PersistenceError as exc:
            log.warning("auth.welcome_failed", user_id=str(user.id), error=exc.reason)
        return user

    def create_access_token(self, subject: str | Any) -> str:
        return security.create_access_token(subject)
