"""Error types for Lorcana Match Tracker Bot."""

from dataclasses import dataclass


class TrackerError(Exception):
    """Base class for errors the bot reports back to the user."""


class InvalidResult(TrackerError, ValueError):
    """A game result is not one of win, loss or draw."""

    def __init__(self, value):
        super().__init__(f"Invalid game result: {value!r}")
        self.value = value


class EmptyRoundSubmission(TrackerError, ValueError):
    """A round was submitted without any games."""

    def __init__(self):
        super().__init__("A round needs at least one game result.")


class RoundTooLong(TrackerError, ValueError):
    """A round has more games than its event type allows."""

    def __init__(self, event_type: str, max_games: int, games: int):
        super().__init__(
            f"{event_type} rounds allow at most {max_games} games, got {games}."
        )
        self.event_type = event_type
        self.max_games = max_games
        self.games = games


class PersistenceError(TrackerError, RuntimeError):
    """The database failed a read or write."""


class NotFound(PersistenceError):
    """A deck, event or round does not exist for this owner."""


@dataclass(frozen=True)
class ConsistencyDrift:
    """Stored event counters disagree with the counts recomputed from rounds.

    Advisory only. The recomputed values are the ones shown.
    """

    event_id: int
    stored: tuple[int, int, int]
    recomputed: tuple[int, int, int]

    def __str__(self) -> str:
        sw, sl, sd = self.stored
        rw, rl, rd = self.recomputed
        return (
            f"event {self.event_id} counters drifted: "
            f"stored {sw}-{sl}-{sd}, recomputed {rw}-{rl}-{rd}"
        )
