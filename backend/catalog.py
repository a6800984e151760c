from __future__ import annotations

from typing import Dict, List

from errors import MalformedValue, UnknownGameType
from models import GameTypeDef

# Trumpless games (betli, durchmars and their variants) are colorless:
# a kontra only doubles the stake of the opponent who called it.
GAME_TYPES: List[GameTypeDef] = [
    GameTypeDef(id=1, name="parti (színjáték)", base_value="1"),
    GameTypeDef(id=2, name="piros parti (piros színjáték)", base_value="2"),
    GameTypeDef(id=3, name="40-100", base_value="4"),
    GameTypeDef(id=4, name="négy ász + parti", base_value="4+1"),
    GameTypeDef(id=5, name="ultimó (ulti) + parti", base_value="4+1"),
    GameTypeDef(id=6, name="betli", base_value="5", colorless=True),
    GameTypeDef(id=7, name="durchmars", base_value="6", colorless=True),
    GameTypeDef(id=8, name="piros 40-100", base_value="8"),
    GameTypeDef(id=9, name="20-100", base_value="8"),
    GameTypeDef(id=10, name="piros négy ász + piros parti", base_value="8+2"),
    GameTypeDef(id=11, name="piros ultimó (piros ulti) + piros parti", base_value="8+2"),
    GameTypeDef(id=12, name="piros betli", base_value="10", colorless=True),
    GameTypeDef(id=13, name="piros durchmars vagy redurchmars", base_value="12", colorless=True),
    GameTypeDef(id=14, name="piros 20-100", base_value="16"),
    GameTypeDef(id=15, name="terített betli", base_value="20", colorless=True),
    GameTypeDef(id=16, name="terített durchmars", base_value="24", colorless=True),
]

_BY_ID: Dict[int, GameTypeDef] = {g.id: g for g in GAME_TYPES}


def list_game_types() -> List[GameTypeDef]:
    return list(GAME_TYPES)


def lookup(game_type_id: int) -> GameTypeDef:
    game_type = _BY_ID.get(game_type_id)
    if game_type is None:
        raise UnknownGameType(game_type_id)
    return game_type


def parse_value(value: str) -> int:
    """Sum a composite point string: "4+1" -> 5, "8" -> 8."""
    total = 0
    for token in value.split("+"):
        token = token.strip()
        try:
            total += int(token)
        except ValueError:
            raise MalformedValue(value) from None
    return total


def value_of(game_type: GameTypeDef) -> int:
    return parse_value(game_type.base_value)
