from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.cache import close_cache, init_cache
from app.core.config import settings
from app.core.db import init_db
from app.core.logging import setup_logging
from app.core.middleware import StructlogMiddleware
from app.modules.alerts import router as alerts_router
from app.modules.alerts.manager import alert_hub, notification_hub, reading_hub
from app.modules.alerts.service import start_alert_pipeline
from app.modules.auth import router as auth_router
from app.modules.notifications import router as notifications_router
from app.modules.roster import router as roster_router
from app.modules.vitals import router as vitals_router

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    mongo_client = await init_db()
    # Redis cache is optional; init_cache() returns None when disabled/unavailable.
    cache_client = await init_cache()
    app.state.mongo_client = mongo_client
    app.state.cache_client = cache_client
    pipeline = start_alert_pipeline()

    yield

    # Shutdown
    pipeline.unsubscribe()
    for hub in (reading_hub, notification_hub, alert_hub):
        hub.close()
    mongo_client.close()
    await close_cache()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    ## Remote Patient Monitoring API

    This API provides:
    * **Vitals**: Patients submit blood pressure, blood sugar, heart rate and temperature readings
    * **Roster**: Doctors link patients and see their latest status
    * **Alerts**: Critical and warning readings fan out to every linked doctor, live over SSE
    * **Notifications**: A persistent inbox per user with read/unread state

    ### Authentication
    Most endpoints require authentication using Bearer tokens.
    1. Register a new user via `/api/v1/signup`
    2. Login via `/api/v1/login/access-token` to get your token
    3. Use the "Authorize" button above to set your token
    """,
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(StructlogMiddleware)

app.include_router(auth_router.router, prefix=settings.API_V1_STR, tags=["auth"])
app.include_router(
    vitals_router.router, prefix=f"{settings.API_V1_STR}/vitals", tags=["vitals"]
)
app.include_router(
    roster_router.router, prefix=f"{settings.API_V1_STR}/roster", tags=["roster"]
)
app.include_router(
    alerts_router.router, prefix=f"{settings.API_V1_STR}/alerts", tags=["alerts"]
)
app.include_router(
    notifications_router.router,
    prefix=f"{settings.API_V1_STR}/notifications",
    tags=["notifications"],
)


@app.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok"}
