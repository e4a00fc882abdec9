from .game import router as game_router
from .health import router as health_router

# Export all routers
__all__ = [
    'game_router',
    'health_router',
]
