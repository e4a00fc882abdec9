"""
Shared game state storage for the hosting API.
"""

from typing import Optional

from .game_service import GameService


class GameSessionStore:
    """Holds the single in-memory game of this process."""

    def __init__(self) -> None:
        self.current: Optional[GameService] = None

    def start(self, game: GameService) -> GameService:
        self.current = game
        return game

    def clear(self) -> None:
        self.current = None


SESSION = GameSessionStore()
