# checkin/api/v1/router.py
from fastapi import APIRouter
from checkin.api.v1 import health, scanner, sessions

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(scanner.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(sessions.router, prefix="/attendance", tags=["attendance-admin"])
