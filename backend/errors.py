from __future__ import annotations


class UltiError(Exception):
    """Base class for scoring engine errors."""


# ---------- catalog data ----------
class MalformedValue(UltiError, ValueError):
    def __init__(self, value: str):
        super().__init__(f"Malformed point value: {value!r}")
        self.value = value


class UnknownGameType(UltiError, LookupError):
    def __init__(self, game_type_id: int):
        super().__init__(f"Unknown game type: {game_type_id}")
        self.game_type_id = game_type_id


# ---------- recoverable, caller errors ----------
class InvalidRoundError(UltiError, ValueError):
    pass


class EmptyLedgerError(UltiError, ValueError):
    def __init__(self, message: str = "No rounds to undo"):
        super().__init__(message)


class InvalidSetup(UltiError, ValueError):
    pass


class InvalidSnapshot(UltiError, ValueError):
    pass


# ---------- defects ----------
class InternalInvariantViolation(UltiError, RuntimeError):
    pass
