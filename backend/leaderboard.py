from __future__ import annotations

from typing import List, Optional, Sequence

from models import Player, Standing


def leader(players: Sequence[Player]) -> Optional[int]:
    """Id of the single top scorer, or None when the top score is shared."""
    if not players:
        return None
    top = max(p.score for p in players)
    leaders = [p.id for p in players if p.score == top]
    return leaders[0] if len(leaders) == 1 else None


def standings(players: Sequence[Player]) -> List[Standing]:
    leader_id = leader(players)
    # sorted() is stable, so tied players keep their seat order
    ordered = sorted(players, key=lambda p: -p.score)
    result: List[Standing] = []
    for idx, p in enumerate(ordered):
        if idx > 0 and p.score == ordered[idx - 1].score:
            rank = result[-1].rank
        else:
            rank = idx + 1
        result.append(
            Standing(rank=rank, player_id=p.id, name=p.name, score=p.score, leader=p.id == leader_id)
        )
    return result
