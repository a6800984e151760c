from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from errors import (
    EmptyLedgerError,
    InvalidRoundError,
    InvalidSetup,
    InvalidSnapshot,
)
from models import Player, Round, RoundMetadata, SessionSnapshot

logger = logging.getLogger(__name__)

MIN_PLAYERS = 3
MAX_PLAYERS = 4


class RoundLedger:
    """Append-only history of committed rounds, newest last."""

    def __init__(self):
        self._rounds: List[Round] = []

    @classmethod
    def from_rounds(cls, rounds: Iterable[Round]) -> "RoundLedger":
        ledger = cls()
        for expected, rnd in enumerate(rounds, start=1):
            if rnd.round_number != expected:
                raise InvalidSnapshot(f"Round {rnd.round_number} found at position {expected}")
            if sum(rnd.per_player_delta.values()) != 0:
                raise InvalidSnapshot(f"Round {rnd.round_number} does not sum to zero")
            ledger._rounds.append(rnd)
        return ledger

    def __len__(self) -> int:
        return len(self._rounds)

    @property
    def last_round_number(self) -> int:
        return self._rounds[-1].round_number if self._rounds else 0

    def append(self, delta: Dict[int, int], metadata: Optional[RoundMetadata] = None) -> Round:
        if sum(delta.values()) != 0:
            raise InvalidRoundError("Round scores must sum to zero")
        meta = metadata or RoundMetadata()
        rnd = Round(
            round_number=self.last_round_number + 1,
            per_player_delta=dict(delta),
            declarer_id=meta.declarer_id,
            game_type_id=meta.game_type_id,
            kontra_ids=meta.kontra_ids,
            sitting_out_id=meta.sitting_out_id,
        )
        self._rounds.append(rnd)
        return rnd

    def undo_last(self) -> Round:
        if not self._rounds:
            raise EmptyLedgerError()
        return self._rounds.pop()

    def history(self) -> Tuple[Round, ...]:
        return tuple(self._rounds)

    def clear(self):
        self._rounds = []


def _clean_names(names: Sequence[str]) -> List[str]:
    if len(names) < MIN_PLAYERS or len(names) > MAX_PLAYERS:
        raise InvalidSetup(f"A game needs {MIN_PLAYERS} or {MAX_PLAYERS} players")
    cleaned = [name.strip() for name in names]
    if any(not name for name in cleaned):
        raise InvalidSetup("Every player needs a name")
    return cleaned


def check_round(players: Sequence[Player], delta: Dict[int, int], meta: RoundMetadata):
    """Check a round against the roster: every player scored, and declarer,
    kontra and sitting-out selections consistent with each other."""
    ids = {p.id for p in players}
    if set(delta) != ids:
        raise InvalidRoundError("Round must list a score for every player")

    declarer_id = meta.declarer_id
    sitting_out_id = meta.sitting_out_id
    kontra_ids = meta.kontra_ids or frozenset()
    if declarer_id is not None and declarer_id not in ids:
        raise InvalidRoundError("Unknown declarer")
    if sitting_out_id is not None:
        if len(players) != MAX_PLAYERS:
            raise InvalidRoundError("Sitting out is only allowed with 4 players")
        if sitting_out_id not in ids:
            raise InvalidRoundError("Unknown sitting-out player")
        if sitting_out_id == declarer_id:
            raise InvalidRoundError("Declarer cannot sit out")
        if delta[sitting_out_id] != 0:
            raise InvalidRoundError("Sitting-out player must score zero")
    if not kontra_ids <= ids:
        raise InvalidRoundError("Unknown kontra player")
    if declarer_id in kontra_ids or sitting_out_id in kontra_ids:
        raise InvalidRoundError("Kontra can only be called by an active opponent")


class GameState:
    """One scoring session: the roster, the running scores and the ledger.

    Scores change only through ``commit_round`` and ``undo_last``. A round is
    validated in full before anything is touched, so a rejected round leaves
    both the scores and the ledger as they were.
    """

    def __init__(self):
        self.players: List[Player] = []
        self.ledger = RoundLedger()
        self.started = False

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    @classmethod
    def start(cls, names: Sequence[str]) -> "GameState":
        state = cls()
        state.setup(names)
        return state

    def setup(self, names: Sequence[str]):
        if self.started:
            raise InvalidSetup("Game already started")
        cleaned = _clean_names(names)
        # duplicate names are allowed, players are told apart by id
        self.players = [Player(id=i, name=name, score=0) for i, name in enumerate(cleaned)]
        self.ledger = RoundLedger()
        self.started = True

    def reset(self):
        self.players = []
        self.ledger.clear()
        self.started = False

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    @property
    def rounds(self) -> Tuple[Round, ...]:
        return self.ledger.history()

    def player(self, player_id: int) -> Player:
        for p in self.players:
            if p.id == player_id:
                return p
        raise KeyError(player_id)

    def player_name(self, player_id: Optional[int]) -> Optional[str]:
        if player_id is None:
            return None
        try:
            return self.player(player_id).name
        except KeyError:
            return None

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------
    def commit_round(self, delta: Dict[int, int], metadata: Optional[RoundMetadata] = None) -> Round:
        if not self.started:
            raise InvalidRoundError("Game not started")
        meta = metadata or RoundMetadata()
        check_round(self.players, delta, meta)
        rnd = self.ledger.append(delta, meta)
        for p in self.players:
            p.score += rnd.per_player_delta[p.id]
        logger.info("Round %s committed: %s", rnd.round_number, rnd.per_player_delta)
        return rnd

    def undo_last(self) -> Round:
        rnd = self.ledger.undo_last()
        for p in self.players:
            p.score -= rnd.per_player_delta.get(p.id, 0)
        logger.info("Round %s undone", rnd.round_number)
        return rnd

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            started=self.started,
            players=[p.model_copy() for p in self.players],
            rounds=list(self.ledger.history()),
        )

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "GameState":
        """Rebuild a session, rejecting the snapshot as a whole if anything is off."""
        if not snapshot.started:
            if snapshot.players or snapshot.rounds:
                raise InvalidSnapshot("A game that has not started cannot have players or rounds")
            return cls()

        try:
            _clean_names([p.name for p in snapshot.players])
        except InvalidSetup as exc:
            raise InvalidSnapshot(str(exc)) from exc
        ids = [p.id for p in snapshot.players]
        if len(set(ids)) != len(ids):
            raise InvalidSnapshot("Duplicate player ids")

        ledger = RoundLedger.from_rounds(snapshot.rounds)
        totals = {pid: 0 for pid in ids}
        for rnd in ledger.history():
            meta = RoundMetadata(
                declarer_id=rnd.declarer_id,
                game_type_id=rnd.game_type_id,
                kontra_ids=rnd.kontra_ids,
                sitting_out_id=rnd.sitting_out_id,
            )
            try:
                check_round(snapshot.players, rnd.per_player_delta, meta)
            except InvalidRoundError as exc:
                raise InvalidSnapshot(f"Round {rnd.round_number}: {exc}") from exc
            for pid, change in rnd.per_player_delta.items():
                totals[pid] += change
        for p in snapshot.players:
            if p.score != totals[p.id]:
                raise InvalidSnapshot(f"Score of player {p.id} does not match the rounds")

        state = cls()
        state.players = [p.model_copy() for p in snapshot.players]
        state.ledger = ledger
        state.started = True
        return state
