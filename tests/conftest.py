from types import SimpleNamespace
from typing import Any, AsyncGenerator, Callable, Iterator
import uuid

import pytest
from beanie import Document, PydanticObjectId
from httpx import ASGITransport, AsyncClient

from app.core import security
from app.core.config import settings
from app.main import app
from app.modules.alerts.manager import alert_hub, notification_hub, reading_hub
from app.modules.notifications.models import Notification
from app.modules.reminders.models import ScheduledReminder
from app.modules.roster.models import DoctorPatientLink
from app.modules.users.models import User
from app.modules.vitals.models import VitalReading
from app.shared.constants import Role, UserStatus

QUERY_FIELDS: dict[type[Document], tuple[str, ...]] = {
    User: ("id", "email"),
    VitalReading: ("id", "user_id", "type", "recorded_at"),
    DoctorPatientLink: ("id", "doctor_id", "patient_id", "status"),
    Notification: ("id", "recipient_id", "read", "title"),
    ScheduledReminder: ("id", "status", "due_at", "recipient_id"),
}


class _FieldProxy:
    """Minimal stand-in for Beanie field proxies used in query expressions."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __eq__(self, other: object) -> tuple[str, str, object]:  # type: ignore[override]
        return ("eq", self.name, other)

    def __ne__(self, other: object) -> tuple[str, str, object]:  # type: ignore[override]
        return ("ne", self.name, other)

    def __ge__(self, other: object) -> tuple[str, str, object]:  # type: ignore[override]
        return ("ge", self.name, other)

    def __le__(self, other: object) -> tuple[str, str, object]:  # type: ignore[override]
        return ("le", self.name, other)

    def __gt__(self, other: object) -> tuple[str, str, object]:  # type: ignore[override]
        return ("gt", self.name, other)

    def __lt__(self, other: object) -> tuple[str, str, object]:  # type: ignore[override]
        return ("lt", self.name, other)


def _install_field_proxies() -> None:
    # Beanie only sets these class attributes inside init_beanie.
    dummy_settings = SimpleNamespace(
        pymongo_collection=None, motor_collection=None, use_state_management=False
    )
    for model, fields in QUERY_FIELDS.items():
        for field in fields:
            setattr(model, field, _FieldProxy(field))
        if getattr(model, "_document_settings", None) is None:
            model._document_settings = dummy_settings  # type: ignore[attr-defined]


def _extract_filters(exprs: tuple[object, ...]) -> list[tuple[str, str, object]]:
    filters: list[tuple[str, str, object]] = []
    for expr in exprs:
        if isinstance(expr, tuple) and len(expr) == 3:
            filters.append(expr)  # type: ignore[arg-type]
    return filters


def _matches(document: Document, filters: list[tuple[str, str, object]]) -> bool:
    for op, field, value in filters:
        attr = getattr(document, field, None)
        if field == "id":
            attr, value = str(attr), str(value)
        if op == "eq" and attr != value:
            return False
        if op == "ne" and attr == value:
            return False
        if op in {"ge", "le", "gt", "lt"}:
            if attr is None:
                return False
            if op == "ge" and not attr >= value:
                return False
            if op == "le" and not attr <= value:
                return False
            if op == "gt" and not attr > value:
                return False
            if op == "lt" and not attr < value:
                return False
    return True


class _FakeQuery:
    def __init__(
        self, collection: dict[str, Document], filters: list[tuple[str, str, object]]
    ) -> None:
        self.collection = collection
        self.filters = filters
        self._sort_field: str | None = None
        self._descending = False
        self._skip = 0
        self._limit: int | None = None

    def find(self, *exprs: object) -> "_FakeQuery":
        query = _FakeQuery(self.collection, [*self.filters, *_extract_filters(exprs)])
        query._sort_field, query._descending = self._sort_field, self._descending
        return query

    def sort(self, sort_spec: str) -> "_FakeQuery":
        self._descending = sort_spec.startswith("-")
        self._sort_field = sort_spec.lstrip("-+")
        return self

    def skip(self, count: int) -> "_FakeQuery":
        self._skip = count
        return self

    def limit(self, count: int) -> "_FakeQuery":
        self._limit = count
        return self

    async def to_list(self) -> list[Any]:
        items = [d for d in self.collection.values() if _matches(d, self.filters)]
        if self._sort_field:
            field = self._sort_field
            items.sort(key=lambda d: getattr(d, field), reverse=self._descending)
        items = items[self._skip :]
        if self._limit is not None:
            items = items[: self._limit]
        return items

    async def first_or_none(self) -> Any:
        items = await self.to_list()
        return items[0] if items else None

    async def count(self) -> int:
        return len(await self.to_list())


def _patch_document(
    monkeypatch: pytest.MonkeyPatch, model: type[Document], collection: dict[str, Document]
) -> None:
    async def _insert(self: Document, *args: Any, **kwargs: Any) -> Document:
        if getattr(self, "id", None) is None:
            self.id = PydanticObjectId()
        collection[str(self.id)] = self
        return self

    async def _delete(self: Document, *args: Any, **kwargs: Any) -> None:
        collection.pop(str(self.id), None)

    async def _get(document_id: object, *args: Any, **kwargs: Any) -> Document | None:
        return collection.get(str(document_id))

    def _find(*exprs: object, **kwargs: Any) -> _FakeQuery:
        return _FakeQuery(collection, _extract_filters(exprs))

    async def _find_one(*exprs: object, **kwargs: Any) -> Document | None:
        return await _find(*exprs).first_or_none()

    monkeypatch.setattr(model, "insert", _insert, raising=False)
    monkeypatch.setattr(model, "save", _insert, raising=False)
    monkeypatch.setattr(model, "delete", _delete, raising=False)
    monkeypatch.setattr(model, "get", staticmethod(_get), raising=False)
    monkeypatch.setattr(model, "find", staticmethod(_find), raising=False)
    monkeypatch.setattr(model, "find_one", staticmethod(_find_one), raising=False)


@pytest.fixture(autouse=True)
def mock_security(monkeypatch: pytest.MonkeyPatch) -> None:
    def mock_hash(password: str) -> str:
        return f"hashed_{password}"

    def mock_verify(plain: str, hashed: str) -> bool:
        return hashed == f"hashed_{plain}"

    monkeypatch.setattr("app.core.security.get_password_hash", mock_hash)
    monkeypatch.setattr("app.core.security.verify_password", mock_verify)


@pytest.fixture(autouse=True)
def beanie_stand_in() -> None:
    _install_field_proxies()


@pytest.fixture(autouse=True)
def reset_hubs() -> Iterator[None]:
    """Every test starts with open hubs and no subscribers."""
    for hub in (reading_hub, notification_hub, alert_hub):
        hub.reset()
    yield
    for hub in (reading_hub, notification_hub, alert_hub):
        hub.reset()


@pytest.fixture
async def db(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[dict[str, dict[str, Any]], None]:
    """
    Provide an in-memory stand-in for Mongo to keep tests hermetic without a running DB.
    """
    settings.MONGODB_DB_NAME = "test_caresync_db"
    store: dict[str, dict[str, Any]] = {
        model.Settings.name: {} for model in QUERY_FIELDS  # type: ignore[attr-defined]
    }

    for model in QUERY_FIELDS:
        _patch_document(monkeypatch, model, store[model.Settings.name])  # type: ignore[attr-defined]

    yield store

    for collection in store.values():
        collection.clear()


@pytest.fixture
async def client(db: dict[str, Any]) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def create_user_func(db: dict[str, Any]) -> Any:
    async def _create_user(password: str = "password123", **kwargs: Any) -> User:
        user_data = {
            "email": f"test_{uuid.uuid4().hex[:12]}@example.com",
            "hashed_password": security.get_password_hash(password),
            "status": UserStatus.ACTIVE,
            "roles": [Role.PATIENT],
        }
        user_data.update(kwargs)  # allow override

        user = User(**user_data)
        await user.insert()
        return user

    return _create_user


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        token = security.create_access_token(subject=str(user.id))
        return {"Authorization": f"Bearer {token}"}

    return _headers
