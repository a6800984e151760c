import itertools

import pytest

from catalog import GAME_TYPES, list_game_types, lookup, parse_value
from errors import InternalInvariantViolation, InvalidRoundError, MalformedValue, UnknownGameType
from models import Declaration, GameTypeDef, Player
import scoring
from scoring import calculate_round, distribute_loss


def make_players(count: int = 3):
    names = ["A", "B", "C", "D"][:count]
    return [Player(id=i, name=name) for i, name in enumerate(names)]


COLORED_1 = GameTypeDef(id=101, name="test colored 1", base_value="1")
COLORED_2 = GameTypeDef(id=102, name="test colored 2", base_value="2")
COLORLESS_4 = GameTypeDef(id=103, name="test colorless 4", base_value="4", colorless=True)


def test_parse_value():
    assert parse_value("4+1") == 5
    assert parse_value("8") == 8
    assert parse_value("8+2") == 10


@pytest.mark.parametrize("value", ["", "x", "4+", "4+a", "+1"])
def test_parse_value_rejects_bad_tokens(value):
    with pytest.raises(MalformedValue):
        parse_value(value)


def test_catalog_is_consistent():
    ids = [g.id for g in list_game_types()]
    assert ids == sorted(set(ids))
    for game_type in GAME_TYPES:
        assert parse_value(game_type.base_value) > 0
    assert lookup(5).base_value == "4+1"
    assert lookup(6).colorless is True
    assert lookup(1).colorless is False


def test_lookup_unknown_game_type():
    with pytest.raises(UnknownGameType):
        lookup(999)


def test_scenario_a_simple_win():
    players = make_players(3)
    decl = Declaration(declarer_id=0, game_type_id=COLORED_1.id, won=True)
    assert calculate_round(players, decl, COLORED_1) == {0: 2, 1: -1, 2: -1}


def test_scenario_b_colorless_with_sitting_out():
    players = make_players(4)
    decl = Declaration(
        declarer_id=0, game_type_id=COLORLESS_4.id, won=True, kontra_ids={1}, sitting_out_id=3
    )
    deltas = calculate_round(players, decl, COLORLESS_4)
    assert deltas == {0: 12, 1: -8, 2: -4, 3: 0}
    assert sum(deltas.values()) == 0


def test_scenario_c_colored_kontra_lost():
    players = make_players(3)
    decl = Declaration(declarer_id=0, game_type_id=COLORED_2.id, won=False, kontra_ids={2})
    assert calculate_round(players, decl, COLORED_2) == {0: -8, 1: 4, 2: 4}


def test_colored_kontra_doubles_every_opponent():
    players = make_players(4)
    decl = Declaration(declarer_id=1, game_type_id=3, won=True, kontra_ids={2}, sitting_out_id=0)
    deltas = calculate_round(players, decl)
    # 40-100 is worth 4, doubled for both opponents
    assert deltas == {0: 0, 1: 16, 2: -8, 3: -8}


def test_catalog_game_resolved_by_id():
    players = make_players(3)
    decl = Declaration(declarer_id=2, game_type_id=5, won=True)
    assert calculate_round(players, decl) == {0: -5, 1: -5, 2: 10}


def test_calculation_is_pure():
    players = make_players(3)
    decl = Declaration(declarer_id=1, game_type_id=6, won=False, kontra_ids={0})
    first = calculate_round(players, decl)
    assert calculate_round(players, decl) == first
    assert all(p.score == 0 for p in players)


def test_every_declaration_sums_to_zero():
    for count in (3, 4):
        players = make_players(count)
        ids = [p.id for p in players]
        sitting_options = ids if count == 4 else [None]
        for game_type, won, declarer, sitting_out in itertools.product(
            GAME_TYPES, (True, False), ids, sitting_options
        ):
            if declarer == sitting_out:
                continue
            opponents = [pid for pid in ids if pid not in (declarer, sitting_out)]
            for size in range(len(opponents) + 1):
                for kontra in itertools.combinations(opponents, size):
                    decl = Declaration(
                        declarer_id=declarer,
                        game_type_id=game_type.id,
                        won=won,
                        kontra_ids=set(kontra),
                        sitting_out_id=sitting_out,
                    )
                    deltas = calculate_round(players, decl)
                    assert sum(deltas.values()) == 0
                    assert set(deltas) == set(ids)
                    if sitting_out is not None:
                        assert deltas[sitting_out] == 0


def test_colorless_declarer_magnitude():
    players = make_players(3)
    decl = Declaration(declarer_id=0, game_type_id=7, won=True, kontra_ids={1})
    deltas = calculate_round(players, decl)
    # durchmars is worth 6: one opponent doubled, one not
    assert deltas[0] == 6 * 2 + 6


def test_missing_declarer_rejected():
    players = make_players(3)
    with pytest.raises(InvalidRoundError):
        calculate_round(players, Declaration(game_type_id=1, won=True))


def test_four_players_require_sitting_out():
    players = make_players(4)
    with pytest.raises(InvalidRoundError):
        calculate_round(players, Declaration(declarer_id=0, game_type_id=1, won=True))


def test_three_players_cannot_sit_out():
    players = make_players(3)
    decl = Declaration(declarer_id=0, game_type_id=1, won=True, sitting_out_id=2)
    with pytest.raises(InvalidRoundError):
        calculate_round(players, decl)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"declarer_id": 0, "sitting_out_id": 0},
        {"declarer_id": 0, "sitting_out_id": 3, "kontra_ids": {0}},
        {"declarer_id": 0, "sitting_out_id": 3, "kontra_ids": {3}},
        {"declarer_id": 0, "sitting_out_id": 3, "kontra_ids": {9}},
        {"declarer_id": 9, "sitting_out_id": 3},
        {"declarer_id": 0, "sitting_out_id": 9},
    ],
)
def test_inconsistent_declarations_rejected(kwargs):
    players = make_players(4)
    with pytest.raises(InvalidRoundError):
        calculate_round(players, Declaration(game_type_id=1, won=True, **kwargs))


def test_unknown_game_type_in_declaration():
    players = make_players(3)
    with pytest.raises(UnknownGameType):
        calculate_round(players, Declaration(declarer_id=0, game_type_id=999, won=True))


def test_postcondition_failure_is_not_returned(monkeypatch):
    players = make_players(3)
    real_sum = sum

    # colored games only use sum() for the final zero-sum check
    monkeypatch.setattr(scoring, "sum", lambda values: real_sum(values) + 1, raising=False)
    with pytest.raises(InternalInvariantViolation):
        calculate_round(players, Declaration(declarer_id=0, game_type_id=1, won=True))


def test_distribute_loss_spreads_remainder():
    players = make_players(4)
    assert distribute_loss(players, 1, 5) == {0: 2, 1: -5, 2: 2, 3: 1}
    assert distribute_loss(make_players(3), 0, 4) == {0: -4, 1: 2, 2: 2}


def test_distribute_loss_validation():
    players = make_players(3)
    with pytest.raises(InvalidRoundError):
        distribute_loss(players, 0, 0)
    with pytest.raises(InvalidRoundError):
        distribute_loss(players, 7, 3)
