"""Round outcome derivation."""

import pytest

from engine import derive_outcome, tally_rounds
from errors import InvalidResult
from models import GameResult
from factories import all_sequences, games, make_round


class TestMajorityRule:
    """A round is won with more game wins than losses, lost with more losses."""

    def test_two_one_with_play_draw_split(self):
        tally = derive_outcome(games("WP WD LP"))
        assert tally.outcome == "win"
        assert (tally.wins, tally.losses, tally.draws) == (2, 1, 0)
        assert (tally.on_play_wins, tally.on_play_losses, tally.on_play_draws) == (1, 1, 0)
        assert (tally.on_draw_wins, tally.on_draw_losses, tally.on_draw_draws) == (1, 0, 0)

    def test_loss(self):
        assert derive_outcome(games("LP LD WP")).outcome == "loss"

    def test_one_all_is_a_draw(self):
        assert derive_outcome(games("WP LD")).outcome == "draw"

    def test_drawn_games_do_not_break_ties(self):
        tally = derive_outcome(games("WP LD DP"))
        assert tally.outcome == "draw"
        assert tally.draws == 1

    def test_single_win_with_drawn_games(self):
        assert derive_outcome(games("DP DD WD")).outcome == "win"

    def test_no_cap_on_game_count(self):
        tally = derive_outcome(games("WP " * 4 + "LD " * 5))
        assert tally.outcome == "loss"
        assert tally.games_played == 9

    def test_every_sequence_up_to_four_games(self):
        for sequence in all_sequences(4):
            tally = derive_outcome(sequence)
            wins = sum(g.result == "win" for g in sequence)
            losses = sum(g.result == "loss" for g in sequence)
            if wins > losses:
                assert tally.outcome == "win"
            elif losses > wins:
                assert tally.outcome == "loss"
            else:
                assert tally.outcome == "draw"
            assert tally.on_play_games + tally.on_draw_games == len(sequence)
            assert tally.on_play_games == sum(g.on_the_play for g in sequence)


class TestEmptyRound:

    def test_empty_round_is_a_draw_with_zero_counts(self):
        tally = derive_outcome([])
        assert tally.outcome == "draw"
        assert tally.games_played == 0
        assert tally.on_play_games == 0
        assert tally.on_draw_games == 0


class TestInput:

    def test_accepts_stored_dicts(self):
        tally = derive_outcome([
            {"result": "win", "onThePlay": True},
            {"result": "loss", "onThePlay": False},
            {"result": "win", "onThePlay": False},
        ])
        assert tally.outcome == "win"
        assert tally.on_draw_wins == 1

    def test_unknown_result_raises(self):
        with pytest.raises(InvalidResult):
            derive_outcome([{"result": "victory", "onThePlay": True}])

    def test_game_result_rejects_unknown_value(self):
        with pytest.raises(InvalidResult):
            GameResult(result="W", on_the_play=True)

    def test_invalid_result_is_a_value_error(self):
        with pytest.raises(ValueError):
            derive_outcome([{"onThePlay": True}])

    def test_missing_play_flag_raises(self):
        with pytest.raises(InvalidResult):
            derive_outcome([{"result": "win"}])

    def test_non_bool_play_flag_raises(self):
        with pytest.raises(InvalidResult):
            derive_outcome([{"result": "win", "onThePlay": "false"}])
        with pytest.raises(InvalidResult):
            GameResult.from_dict({"result": "loss", "on_the_play": 1})

    def test_snake_case_play_flag(self):
        assert GameResult.from_dict({"result": "draw", "on_the_play": False}) == GameResult("draw", False)

    def test_accepts_generators(self):
        assert derive_outcome(g for g in games("WP WP")).outcome == "win"


def test_tally_rounds_keeps_round_order():
    tallies = tally_rounds([make_round("LP"), make_round("WP WD"), make_round("")])
    assert [t.outcome for t in tallies] == ["loss", "win", "draw"]
