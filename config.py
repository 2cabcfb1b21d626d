"""Environment configuration for Lorcana Match Tracker Bot."""

import os
from dataclasses import dataclass


@dataclass
class Config:
    """Bot configuration loaded from environment variables."""

    discord_token: str
    database_path: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        token = os.getenv("DISCORD_TOKEN")
        if not token:
            raise ValueError("DISCORD_TOKEN environment variable is required")

        database_path = os.getenv("DATABASE_PATH", "lorcana_tracker.db")

        return cls(
            discord_token=token,
            database_path=database_path,
        )


# Game results
RESULTS = ("win", "loss", "draw")

# Event types
EVENT_TYPES = ("Tournament", "Playtest")

# Tournament rounds are best-of-three; playtests are open ended
TOURNAMENT_MAX_GAMES = 3

# Constructed formats
FORMATS = {
    "Core": "Core Constructed",
    "Infinity": "Infinity Constructed",
}

INK_COLORS = [
    "Amber",
    "Amethyst",
    "Emerald",
    "Ruby",
    "Sapphire",
    "Steel",
]

ARCHETYPES = [
    "Aggro",
    "Combo",
    "Control",
    "Midrange",
]

# Decks and opponents play at most two inks
MAX_INKS = 2

# Embed color (Lorcana gold)
EMBED_COLOR = 0xD4A72C
