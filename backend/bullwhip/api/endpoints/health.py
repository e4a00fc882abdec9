from typing import Dict

from fastapi import APIRouter

from ...core.config import settings
from ...services.state import SESSION

router = APIRouter()


@router.get("/health", response_model=Dict[str, str])
def health_check() -> Dict[str, str]:
    """
    Health check endpoint reporting whether a game is loaded.
    """
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "game": "in_progress" if SESSION.current is not None else "none",
    }
