from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from catalog import lookup, value_of
from errors import InternalInvariantViolation, InvalidRoundError
from models import Declaration, GameTypeDef, Player


def _check_declaration(players: Sequence[Player], declaration: Declaration) -> None:
    ids = {p.id for p in players}
    declarer_id = declaration.declarer_id
    sitting_out_id = declaration.sitting_out_id

    if declarer_id is None:
        raise InvalidRoundError("Declarer is required")
    if declarer_id not in ids:
        raise InvalidRoundError("Unknown declarer")
    if len(players) == 4 and sitting_out_id is None:
        raise InvalidRoundError("Sitting-out player is required with 4 players")
    if sitting_out_id is not None:
        if len(players) != 4:
            raise InvalidRoundError("Sitting out is only allowed with 4 players")
        if sitting_out_id not in ids:
            raise InvalidRoundError("Unknown sitting-out player")
        if sitting_out_id == declarer_id:
            raise InvalidRoundError("Declarer cannot sit out")
    for kontra_id in declaration.kontra_ids:
        if kontra_id not in ids:
            raise InvalidRoundError("Unknown kontra player")
        if kontra_id == declarer_id:
            raise InvalidRoundError("Declarer cannot call kontra")
        if kontra_id == sitting_out_id:
            raise InvalidRoundError("Sitting-out player cannot call kontra")


def calculate_round(
    players: Sequence[Player],
    declaration: Declaration,
    game_type: Optional[GameTypeDef] = None,
) -> Dict[int, int]:
    """Turn a declaration into per-player point deltas.

    The declarer plays against every active opponent. In a colorless game each
    opponent's own kontra doubles only that opponent's stake; in a colored game
    any kontra doubles the stake of every opponent. The sitting-out player gets
    zero. The result always covers every player and sums to zero.
    """
    _check_declaration(players, declaration)
    if game_type is None:
        game_type = lookup(declaration.game_type_id)

    declarer_id = declaration.declarer_id
    active = [p for p in players if p.id != declaration.sitting_out_id]
    others = [p for p in active if p.id != declarer_id]
    if not others:
        raise InvalidRoundError("Declarer has no opponents")

    base = value_of(game_type)
    sign = 1 if declaration.won else -1
    kontra = declaration.kontra_ids

    deltas: Dict[int, int] = {p.id: 0 for p in players}
    if game_type.colorless:
        for p in others:
            stake = base * (2 if p.id in kontra else 1) * sign
            deltas[p.id] = -stake
        deltas[declarer_id] = -sum(deltas[p.id] for p in others)
    else:
        stake = base * (2 if kontra else 1) * sign
        for p in others:
            deltas[p.id] = -stake
        deltas[declarer_id] = stake * len(others)

    if declaration.sitting_out_id is not None:
        deltas[declaration.sitting_out_id] = 0

    if sum(deltas.values()) != 0:
        raise InternalInvariantViolation(f"Round deltas do not sum to zero: {deltas}")
    return deltas


def distribute_loss(players: Sequence[Player], payer_id: int, amount: int) -> Dict[int, int]:
    """Charge ``amount`` to one player and split it among the others.

    The split is as even as possible; leftover points go one each to the
    earliest seats.
    """
    if amount <= 0:
        raise InvalidRoundError("Amount must be positive")
    if not any(p.id == payer_id for p in players):
        raise InvalidRoundError("Unknown player")
    others: List[Player] = [p for p in players if p.id != payer_id]
    if not others:
        raise InvalidRoundError("Nobody to distribute to")

    share, remainder = divmod(amount, len(others))
    deltas: Dict[int, int] = {payer_id: -amount}
    for p in others:
        deltas[p.id] = share + (1 if remainder > 0 else 0)
        if remainder > 0:
            remainder -= 1
    return {p.id: deltas[p.id] for p in players}
