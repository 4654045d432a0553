from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import settings
from app.modules.notifications.models import Notification
from app.modules.reminders.models import ScheduledReminder
from app.modules.roster.models import DoctorPatientLink
from app.modules.users.models import User
from app.modules.vitals.models import VitalReading

MONGO_CLIENT: AsyncIOMotorClient | None = None

DOCUMENT_MODELS = [
    User,
    VitalReading,
    DoctorPatientLink,
    Notification,
    ScheduledReminder,
]


async def init_db() -> AsyncIOMotorClient:
    """
    Create a single Motor client, initialize Beanie, and return the client.

    Called once by the API lifespan and once by the reminder poller.
    """
    global MONGO_CLIENT

    client = AsyncIOMotorClient(
        settings.MONGODB_URL,
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=5000,
    )

    db: AsyncIOMotorDatabase = client[settings.MONGODB_DB_NAME]
    await init_beanie(database=db, document_models=DOCUMENT_MODELS)

    MONGO_CLIENT = client
    return client
