"""Data models for Lorcana Match Tracker Bot."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from config import RESULTS
from errors import ConsistencyDrift, InvalidResult


@dataclass(frozen=True)
class GameResult:
    """A single game within a round."""

    result: str  # 'win', 'loss' or 'draw'
    on_the_play: bool

    def __post_init__(self):
        if self.result not in RESULTS:
            raise InvalidResult(self.result)

    @classmethod
    def from_dict(cls, data: dict) -> "GameResult":
        """Build from a stored {result, onThePlay} mapping.

        The play/draw flag must be present and a bool.
        """
        on_the_play = data.get("onThePlay", data.get("on_the_play"))
        if not isinstance(on_the_play, bool):
            raise InvalidResult(data)
        return cls(result=data.get("result"), on_the_play=on_the_play)


@dataclass
class Deck:
    """Represents a deck in the database."""

    id: int
    owner_id: str
    name: str
    ink_colors: list[str]
    archetypes: list[str]
    format: str
    created_at: datetime


@dataclass
class Event:
    """Represents an event (tournament or playtest session)."""

    id: int
    owner_id: str
    name: str
    event_type: str  # 'Tournament' or 'Playtest'
    user_deck_id: Optional[int]
    user_deck_name: Optional[str]  # legacy events only carry the name
    start_date: date
    format: str
    wins: int
    losses: int
    draws: int
    created_at: datetime


@dataclass
class Round:
    """Represents one match within an event."""

    id: int
    event_id: int
    games: tuple[GameResult, ...]
    opponent_ink_colors: tuple[str, ...]
    created_at: datetime


@dataclass(frozen=True)
class CounterDelta:
    """Signed adjustment to an event's stored win/loss/draw counters."""

    wins: int = 0
    losses: int = 0
    draws: int = 0

    def __add__(self, other: "CounterDelta") -> "CounterDelta":
        return CounterDelta(
            wins=self.wins + other.wins,
            losses=self.losses + other.losses,
            draws=self.draws + other.draws,
        )

    def __neg__(self) -> "CounterDelta":
        return CounterDelta(wins=-self.wins, losses=-self.losses, draws=-self.draws)

    @property
    def is_zero(self) -> bool:
        return self.wins == 0 and self.losses == 0 and self.draws == 0


@dataclass(frozen=True)
class RoundTally:
    """Per-round game counts and the derived round outcome."""

    outcome: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    on_play_wins: int = 0
    on_play_losses: int = 0
    on_play_draws: int = 0
    on_draw_wins: int = 0
    on_draw_losses: int = 0
    on_draw_draws: int = 0

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def on_play_games(self) -> int:
        return self.on_play_wins + self.on_play_losses + self.on_play_draws

    @property
    def on_draw_games(self) -> int:
        return self.on_draw_wins + self.on_draw_losses + self.on_draw_draws


@dataclass(frozen=True)
class MatchStats:
    """Computed statistics for a set of rounds (one event or a whole deck)."""

    matches_won: int
    matches_lost: int
    matches_drawn: int
    games_won: int
    games_lost: int
    games_drawn: int
    games_on_play: int
    games_won_on_play: int
    games_on_draw: int
    games_won_on_draw: int
    match_win_rate: float
    game_win_rate: float
    on_play_game_win_rate: float
    on_draw_game_win_rate: float

    @property
    def total_rounds(self) -> int:
        return self.matches_won + self.matches_lost + self.matches_drawn

    @property
    def total_games(self) -> int:
        return self.games_won + self.games_lost + self.games_drawn


@dataclass
class RoundSummary:
    """A round with its derived tally, as shown in event detail."""

    round: Round
    tally: RoundTally


@dataclass
class EventSummary:
    """An event with freshly computed statistics."""

    event: Event
    deck_name: str
    stats: MatchStats
    drift: Optional[ConsistencyDrift] = None


@dataclass
class EventDetail:
    """An event with its rounds and freshly computed statistics."""

    event: Event
    deck_name: str
    rounds: list[RoundSummary]
    stats: MatchStats
    drift: Optional[ConsistencyDrift] = None


@dataclass
class DeckSummary:
    """A deck with statistics over every round of every event it played."""

    deck: Deck
    event_count: int
    stats: MatchStats
    event_ids: list[int] = field(default_factory=list)
