"""Keep an event's stored win/loss/draw counters in step with its rounds.

An event stores how many of its rounds were won, lost and drawn. Rather than
recounting every round on each write, every round mutation applies a signed
delta to those counters in the same transaction as the round write. The read
views recompute everything from the rounds anyway, so any drift here is
cosmetic until the next view.
"""

from typing import Iterable, Optional, Sequence, Union

from config import TOURNAMENT_MAX_GAMES
from engine.outcomes import coerce_game, derive_outcome
from errors import EmptyRoundSubmission, RoundTooLong
from models import CounterDelta, GameResult, Round, RoundTally
from utils.console import Colors, log


def delta_for_outcome(tally: RoundTally) -> CounterDelta:
    """The counter change for counting one round with this tally."""
    return CounterDelta(
        wins=int(tally.outcome == "win"),
        losses=int(tally.outcome == "loss"),
        draws=int(tally.outcome == "draw"),
    )


def delta_for_add(games: Iterable[GameResult]) -> CounterDelta:
    return delta_for_outcome(derive_outcome(games))


def delta_for_delete(games: Iterable[GameResult]) -> CounterDelta:
    return -delta_for_add(games)


def delta_for_edit(
    old_games: Iterable[GameResult],
    new_games: Iterable[GameResult],
) -> CounterDelta:
    """The counter change for replacing a round's games.

    Each bucket moves by -1, 0 or +1. Zero everywhere when the outcome is
    unchanged.
    """
    return delta_for_add(new_games) + delta_for_delete(old_games)


def validate_games(
    games: Iterable[Union[GameResult, dict]],
    event_type: Optional[str] = None,
) -> list[GameResult]:
    """Check a submitted round before anything is written."""
    games = [coerce_game(game) for game in games]
    if not games:
        raise EmptyRoundSubmission()
    if event_type == "Tournament" and len(games) > TOURNAMENT_MAX_GAMES:
        raise RoundTooLong(event_type, TOURNAMENT_MAX_GAMES, len(games))
    return games


class RoundReconciler:
    """Applies round mutations together with their counter deltas."""

    def __init__(self, store):
        self.store = store

    async def add_round(
        self,
        owner_id: str,
        event_id: int,
        games: Sequence[Union[GameResult, dict]],
        opponent_ink_colors: Sequence[str] = (),
    ) -> int:
        """Create a round and count its outcome. Returns the new round id."""
        games = validate_games(games)
        delta = delta_for_add(games)

        async with self.store.transaction():
            event = await self.store.fetch_event_meta(owner_id, event_id)
            validate_games(games, event.event_type)
            round_id = await self.store.create_round(
                owner_id, event_id, games, opponent_ink_colors
            )
            await self.store.apply_counter_delta(owner_id, event_id, delta)

        log("ROUNDS", f"Added round {round_id} to event {event_id} ({delta})", Colors.GREEN)
        return round_id

    async def edit_round(
        self,
        owner_id: str,
        event_id: int,
        previous: Round,
        games: Sequence[Union[GameResult, dict]],
        opponent_ink_colors: Sequence[str] = (),
    ) -> CounterDelta:
        """Replace a round's games.

        `previous` is the round as it was loaded when the edit started; the
        delta is taken against it and the round is not fetched again.
        """
        games = validate_games(games)
        delta = delta_for_edit(previous.games, games)

        async with self.store.transaction():
            event = await self.store.fetch_event_meta(owner_id, event_id)
            validate_games(games, event.event_type)
            await self.store.replace_round(
                owner_id, event_id, previous.id, games, opponent_ink_colors
            )
            if not delta.is_zero:
                await self.store.apply_counter_delta(owner_id, event_id, delta)

        log("ROUNDS", f"Edited round {previous.id} of event {event_id} ({delta})", Colors.GREEN)
        return delta

    async def delete_round(self, owner_id: str, event_id: int, round: Round) -> CounterDelta:
        """Remove a round and uncount its outcome."""
        delta = delta_for_delete(round.games)

        async with self.store.transaction():
            await self.store.delete_round(owner_id, event_id, round.id)
            await self.store.apply_counter_delta(owner_id, event_id, delta)

        log("ROUNDS", f"Deleted round {round.id} from event {event_id} ({delta})", Colors.GREEN)
        return delta
