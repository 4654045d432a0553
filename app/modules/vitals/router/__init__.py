"""Compose vitals routers."""

from fastapi import APIRouter

from .http import create_vital, read_latest_vital, read_latest_vitals, read_vitals
from .http import router as http_router

router = APIRouter()
router.include_router(http_router)

__all__ = [
    "router",
    "create_vital",
    "read_latest_vital",
    "read_latest_vitals",
    "read_vitals",
]
