"""Errors raised by the bullwhip game engine."""

from __future__ import annotations


class BullwhipGameError(Exception):
    """Base class for every error surfaced by the game engine."""


class UnknownRole(BullwhipGameError, LookupError, ValueError):
    """A role name that is not a member of the supply chain."""

    def __init__(self, role: object) -> None:
        self.role = role
        super().__init__(f"Unknown supply chain role: {role!r}")


class InvalidRound(BullwhipGameError, ValueError):
    """A round outside the game bounds or processed out of sequence."""

    def __init__(self, round_number: object, expected: int | None = None, max_rounds: int | None = None) -> None:
        self.round_number = round_number
        self.expected = expected
        self.max_rounds = max_rounds
        if expected is not None:
            message = f"Round {round_number} is out of sequence; expected round {expected}"
        else:
            message = f"Round {round_number} is outside the range 1..{max_rounds}"
        super().__init__(message)


class GameNotFinished(BullwhipGameError):
    """Final results were requested before the last round was processed."""


class InvariantViolation(BullwhipGameError, RuntimeError):
    """Engine state broke a protocol invariant (e.g. negative inventory)."""
