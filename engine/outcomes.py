"""Derive a round's outcome from its game results."""

from typing import Iterable, Union

from errors import InvalidResult
from models import GameResult, Round, RoundTally


def coerce_game(game: Union[GameResult, dict]) -> GameResult:
    if isinstance(game, GameResult):
        return game
    if isinstance(game, dict):
        return GameResult.from_dict(game)
    raise InvalidResult(game)


def derive_outcome(games: Iterable[Union[GameResult, dict]]) -> RoundTally:
    """Tally a round's games and classify it as a win, loss or draw.

    The round is a win if it has more game wins than losses, a loss if it has
    more losses than wins, and a draw otherwise. Drawn games never count
    towards either side, so an empty round is a draw with every count zero.
    """
    counts = {
        "win": [0, 0],   # [on the play, on the draw]
        "loss": [0, 0],
        "draw": [0, 0],
    }
    for game in games:
        game = coerce_game(game)
        counts[game.result][0 if game.on_the_play else 1] += 1

    wins = sum(counts["win"])
    losses = sum(counts["loss"])
    draws = sum(counts["draw"])

    if wins > losses:
        outcome = "win"
    elif losses > wins:
        outcome = "loss"
    else:
        outcome = "draw"

    return RoundTally(
        outcome=outcome,
        wins=wins,
        losses=losses,
        draws=draws,
        on_play_wins=counts["win"][0],
        on_play_losses=counts["loss"][0],
        on_play_draws=counts["draw"][0],
        on_draw_wins=counts["win"][1],
        on_draw_losses=counts["loss"][1],
        on_draw_draws=counts["draw"][1],
    )


def tally_rounds(rounds: Iterable[Round]) -> list[RoundTally]:
    """Derive the tally for each round, keeping input order."""
    return [derive_outcome(r.games) for r in rounds]
