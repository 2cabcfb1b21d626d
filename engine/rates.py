"""Fold rounds into match and game win-rate statistics."""

from dataclasses import dataclass, fields
from decimal import Decimal, ROUND_HALF_UP
from functools import reduce
from typing import Iterable

from engine.outcomes import derive_outcome
from models import MatchStats, Round, RoundTally


_TWO_PLACES = Decimal("0.01")


def percentage(numerator: int, denominator: int) -> float:
    """Return numerator / denominator * 100 rounded to 2 places, half away from zero.

    Returns 0 when the denominator is 0. The division is exact (Decimal), so
    rounding applies to the true ratio rather than a float approximation.
    """
    if denominator == 0:
        return 0.0
    ratio = Decimal(numerator) * 100 / Decimal(denominator)
    return float(ratio.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class MatchTotals:
    """Raw counts for a set of rounds. Adding two totals merges their rounds."""

    matches_won: int = 0
    matches_lost: int = 0
    matches_drawn: int = 0
    games_won: int = 0
    games_lost: int = 0
    games_drawn: int = 0
    games_on_play: int = 0
    games_won_on_play: int = 0
    games_on_draw: int = 0
    games_won_on_draw: int = 0

    @classmethod
    def from_tally(cls, tally: RoundTally) -> "MatchTotals":
        return cls(
            matches_won=int(tally.outcome == "win"),
            matches_lost=int(tally.outcome == "loss"),
            matches_drawn=int(tally.outcome == "draw"),
            games_won=tally.wins,
            games_lost=tally.losses,
            games_drawn=tally.draws,
            games_on_play=tally.on_play_games,
            games_won_on_play=tally.on_play_wins,
            games_on_draw=tally.on_draw_games,
            games_won_on_draw=tally.on_draw_wins,
        )

    def __add__(self, other: "MatchTotals") -> "MatchTotals":
        return MatchTotals(**{
            f.name: getattr(self, f.name) + getattr(other, f.name)
            for f in fields(self)
        })

    @property
    def total_rounds(self) -> int:
        return self.matches_won + self.matches_lost + self.matches_drawn

    @property
    def total_games(self) -> int:
        return self.games_won + self.games_lost + self.games_drawn

    def to_stats(self) -> MatchStats:
        """Compute the percentages from these totals."""
        return MatchStats(
            matches_won=self.matches_won,
            matches_lost=self.matches_lost,
            matches_drawn=self.matches_drawn,
            games_won=self.games_won,
            games_lost=self.games_lost,
            games_drawn=self.games_drawn,
            games_on_play=self.games_on_play,
            games_won_on_play=self.games_won_on_play,
            games_on_draw=self.games_on_draw,
            games_won_on_draw=self.games_won_on_draw,
            match_win_rate=percentage(self.matches_won, self.total_rounds),
            game_win_rate=percentage(self.games_won, self.total_games),
            on_play_game_win_rate=percentage(self.games_won_on_play, self.games_on_play),
            on_draw_game_win_rate=percentage(self.games_won_on_draw, self.games_on_draw),
        )


def total_tallies(tallies: Iterable[RoundTally]) -> MatchTotals:
    """Sum per-round tallies into raw totals."""
    return reduce(
        lambda acc, tally: acc + MatchTotals.from_tally(tally),
        tallies,
        MatchTotals(),
    )


def compute_stats(rounds: Iterable[Round]) -> MatchStats:
    """Compute match and game statistics for a collection of rounds.

    Works the same for the rounds of a single event and for the union of
    rounds across every event played with a deck. The result only depends on
    which rounds are given, not their order.
    """
    return total_tallies(derive_outcome(r.games) for r in rounds).to_stats()
