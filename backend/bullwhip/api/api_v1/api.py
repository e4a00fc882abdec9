from fastapi import APIRouter

from ..endpoints import game_router, health_router

api_router = APIRouter()

# Include API routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(game_router, prefix="/game", tags=["game"])
