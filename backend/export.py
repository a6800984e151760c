from __future__ import annotations

import csv
import io
from typing import List, Optional

from catalog import lookup
from errors import UnknownGameType
from game import GameState
from models import Round

EM_DASH = "—"

HEADER_TAIL = ["Declarer", "Game", "Kontra", "Sitting out"]


def format_delta(change: int) -> str:
    """Human-facing rendering of a round delta: +3, — or -3."""
    if change > 0:
        return f"+{change}"
    if change == 0:
        return EM_DASH
    return str(change)


def _game_name(game_type_id: Optional[int]) -> str:
    if game_type_id is None:
        return ""
    try:
        return lookup(game_type_id).name
    except UnknownGameType:
        return str(game_type_id)


def _round_row(state: GameState, rnd: Round) -> List[str]:
    row = [str(rnd.round_number)]
    for p in state.players:
        row.append(format_delta(rnd.per_player_delta.get(p.id, 0)))
    kontra_names = [
        state.player_name(pid) or str(pid) for pid in sorted(rnd.kontra_ids or ())
    ]
    row.extend([
        state.player_name(rnd.declarer_id) or "",
        _game_name(rnd.game_type_id),
        ", ".join(kontra_names),
        state.player_name(rnd.sitting_out_id) or "",
    ])
    return row


def export_csv(state: GameState, delimiter: str = ",") -> str:
    """One row per round plus a trailing totals row."""
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    writer.writerow(["Round"] + [p.name for p in state.players] + HEADER_TAIL)
    for rnd in state.rounds:
        writer.writerow(_round_row(state, rnd))
    writer.writerow(["Total"] + [str(p.score) for p in state.players] + [""] * len(HEADER_TAIL))
    return buf.getvalue()
