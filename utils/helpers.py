"""Helper utilities for Lorcana Match Tracker Bot."""

import re
import discord
from datetime import date, datetime
from typing import Iterable, Optional

from config import EMBED_COLOR, INK_COLORS, MAX_INKS
from errors import InvalidResult
from models import GameResult, MatchStats
from utils.console import Colors, log


RESULT_ALIASES = {
    "w": "win",
    "win": "win",
    "l": "loss",
    "loss": "loss",
    "d": "draw",
    "draw": "draw",
    "t": "draw",
    "tie": "draw",
}

POSITION_ALIASES = {
    "p": True,
    "play": True,
    "otp": True,
    "d": False,
    "draw": False,
    "otd": False,
}

RESULT_LETTERS = {"win": "W", "loss": "L", "draw": "D"}


def _split_tokens(text: str) -> list[str]:
    return [part for part in re.split(r"[,\s]+", text.strip()) if part]


def parse_games(text: str) -> list[GameResult]:
    """
    Parse a round's game results from free text, in play order.

    Each game is a result and whether you were on the play or the draw:
    - compact: WP, LD, DD (result letter then P/D)
    - long: win:play, loss/draw, draw:otp

    Games are separated by commas, spaces or newlines.
    """
    log("HELPERS", f"parse_games called with: '{text}'", Colors.YELLOW)
    games = []
    for token in _split_tokens(text.lower()):
        if ":" in token or "/" in token:
            result_part, _, position_part = re.split(r"([:/])", token, maxsplit=1)
        else:
            result_part, position_part = token[:1], token[1:]

        result = RESULT_ALIASES.get(result_part)
        if result is None:
            raise InvalidResult(result_part)

        if position_part not in POSITION_ALIASES:
            raise ValueError(
                f"Could not tell if '{token}' was on the play or on the draw. "
                "End each game with P (play) or D (draw), e.g. WP or L:draw."
            )

        games.append(GameResult(result=result, on_the_play=POSITION_ALIASES[position_part]))

    log("HELPERS", f"  parsed {len(games)} game(s)", Colors.YELLOW)
    return games


def parse_ink_colors(text: Optional[str]) -> tuple[str, ...]:
    """Parse up to two ink color names, case-insensitive. Returns them sorted."""
    if not text:
        return ()

    known = {ink.lower(): ink for ink in INK_COLORS}
    inks = set()
    for token in _split_tokens(text):
        ink = known.get(token.lower())
        if ink is None:
            raise ValueError(
                f"Unknown ink color '{token}'. Choose from: {', '.join(INK_COLORS)}"
            )
        inks.add(ink)

    if len(inks) > MAX_INKS:
        raise ValueError(f"You can select a maximum of {MAX_INKS} ink colors.")

    return tuple(sorted(inks))


def parse_list(text: Optional[str], allowed: Iterable[str], label: str) -> list[str]:
    """Parse a comma separated list against a set of allowed values."""
    if not text:
        return []
    known = {value.lower(): value for value in allowed}
    values = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        value = known.get(part.lower())
        if value is None:
            raise ValueError(f"Unknown {label} '{part}'. Choose from: {', '.join(known.values())}")
        if value not in values:
            values.append(value)
    return values


def parse_date(text: Optional[str]) -> date:
    """Parse a YYYY-MM-DD date. Empty input means today."""
    if not text or not text.strip():
        return date.today()
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"'{text}' is not a date. Use YYYY-MM-DD.")


def format_games(games: Iterable[GameResult]) -> str:
    """Format games compactly, e.g. 'WP LD WD'."""
    tokens = [
        RESULT_LETTERS[game.result] + ("P" if game.on_the_play else "D")
        for game in games
    ]
    return " ".join(tokens) if tokens else "no games"


def format_record(wins: int, losses: int, draws: int) -> str:
    """Format a W-L-D record."""
    return f"{wins}-{losses}-{draws}"


def format_win_rate(win_rate: float) -> str:
    """Format win rate as percentage string."""
    return f"{win_rate:.2f}%"


def format_outcome(outcome: str) -> str:
    """Format a round outcome as a short label."""
    return {"win": "Win", "loss": "Loss", "draw": "Draw"}.get(outcome, outcome)


def format_inks(inks: Iterable[str]) -> str:
    inks = list(inks)
    return "/".join(inks) if inks else "Unknown"


def format_stats_block(stats: MatchStats) -> str:
    """Format the match / game / play / draw lines for an embed field."""
    return (
        f"**Matches:** {format_record(stats.matches_won, stats.matches_lost, stats.matches_drawn)}"
        f" ({format_win_rate(stats.match_win_rate)})\n"
        f"**Games:** {format_record(stats.games_won, stats.games_lost, stats.games_drawn)}"
        f" ({format_win_rate(stats.game_win_rate)})\n"
        f"**On the Play:** {stats.games_won_on_play}/{stats.games_on_play}"
        f" ({format_win_rate(stats.on_play_game_win_rate)})\n"
        f"**On the Draw:** {stats.games_won_on_draw}/{stats.games_on_draw}"
        f" ({format_win_rate(stats.on_draw_game_win_rate)})"
    )


def create_error_embed(title: str, description: str) -> discord.Embed:
    """Create a standardized error embed."""
    return discord.Embed(
        title=f"Error: {title}",
        description=description,
        color=discord.Color.red()
    )


def create_success_embed(title: str, description: str) -> discord.Embed:
    """Create a standardized success embed."""
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.green()
    )


def create_info_embed(title: str, description: str = "") -> discord.Embed:
    """Create a standardized info embed with Lorcana theming."""
    return discord.Embed(
        title=title,
        description=description,
        color=EMBED_COLOR
    )


def truncate_string(text: str, max_length: int = 100) -> str:
    """Truncate string with ellipsis if too long."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."
