"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from rehearsal.api.routes import capabilities, users, songs, sessions

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(capabilities.router)
api_router.include_router(users.router)
api_router.include_router(songs.router)
api_router.include_router(sessions.router)
