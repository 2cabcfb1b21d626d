"""Main bot entry point for Lorcana Match Tracker."""

import asyncio
import logging
from dotenv import load_dotenv
load_dotenv()

import discord
from discord import app_commands
from discord.ext import commands

from config import Config, TOURNAMENT_MAX_GAMES
from database import Database
from engine import RoundReconciler
from utils import Colors, log
from utils.helpers import create_info_embed

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("lorcana-tracker")


class TrackerBot(commands.Bot):
    """Lorcana Match Tracker Discord Bot."""

    def __init__(self, config: Config):
        intents = discord.Intents.default()

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None
        )

        self.config = config
        self.db = Database(config.database_path)
        self.reconciler = RoundReconciler(self.db)

    async def setup_hook(self) -> None:
        """Called when the bot is starting up."""
        log("BOT", "setup_hook starting...", Colors.GREEN)
        # Connect to database
        await self.db.connect()
        log("BOT", f"Database connected ({self.config.database_path})", Colors.GREEN)

        # Load cogs
        for extension in ("cogs.decks", "cogs.events", "cogs.rounds"):
            await self.load_extension(extension)
            log("BOT", f"  Loaded {extension}", Colors.GREEN)

        # Sync commands
        log("BOT", "Syncing commands...", Colors.GREEN)
        await self.tree.sync()
        log("BOT", "Commands synced!", Colors.GREEN)

    async def on_ready(self) -> None:
        """Called when the bot is ready."""
        log("BOT", f"Logged in as {self.user} (ID: {self.user.id})", Colors.GREEN)
        log("BOT", f"Connected to {len(self.guilds)} guild(s)", Colors.GREEN)

    async def close(self) -> None:
        """Clean up on shutdown."""
        await self.db.close()
        await super().close()


@app_commands.command(name="help", description="Get help with Lorcana Match Tracker commands")
async def help_command(interaction: discord.Interaction) -> None:
    """Display help information about all commands."""
    embed = create_info_embed(
        "Lorcana Match Tracker - Help",
        "Track your decks, events and rounds. Everything you record is private to you."
    )

    embed.add_field(
        name="Decks",
        value=(
            "**/adddeck** `format` - Add a deck (opens a form)\n"
            "**/decks** - Your decks with match and game win rates\n"
            "**/deletedeck** `deck` - Delete a deck (events are kept)"
        ),
        inline=False
    )

    embed.add_field(
        name="Events",
        value=(
            "**/newevent** `type` `format` `[deck]` - Start a tournament or playtest\n"
            "**/events** `[type]` - Your events with win rates\n"
            "**/event** `event` - Rounds and on the play / on the draw split\n"
            "**/editevent** `event` `[no_deck]` - Edit an event's details or detach its deck\n"
            "**/deleteevent** `event` - Delete an event and its rounds"
        ),
        inline=False
    )

    embed.add_field(
        name="Rounds",
        value=(
            "**/addround** `event` - Record a round\n"
            "**/editround** `event` `round` - Change a round's games\n"
            "**/deleteround** `event` `round` - Remove a round"
        ),
        inline=False
    )

    embed.add_field(
        name="Entering Games",
        value=(
            "One entry per game, in order: result (**W**in, **L**oss, **D**raw) then "
            "**P** if you were on the play or **D** if on the draw.\n"
            f"`WP LD WD` = won on the play, lost on the draw, won on the draw.\n"
            f"Tournament rounds allow up to {TOURNAMENT_MAX_GAMES} games."
        ),
        inline=False
    )

    embed.set_footer(text="Match win rate counts rounds; game win rate counts games.")

    await interaction.response.send_message(embed=embed, ephemeral=True)


async def main() -> None:
    """Main entry point."""
    config = Config.from_env()
    logger.info("Starting Lorcana Match Tracker")
    bot = TrackerBot(config)

    # Add help command to tree
    bot.tree.add_command(help_command)

    async with bot:
        await bot.start(config.discord_token)


if __name__ == "__main__":
    asyncio.run(main())
