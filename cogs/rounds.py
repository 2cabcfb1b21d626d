"""Round logging cog for Lorcana Match Tracker Bot."""

import discord
from discord import app_commands, ui
from discord.ext import commands
from typing import Optional

from config import INK_COLORS, TOURNAMENT_MAX_GAMES
from engine import derive_outcome
from errors import TrackerError
from models import Event, Round
from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    create_success_embed,
    format_games,
    format_inks,
    format_outcome,
    format_record,
    parse_games,
    parse_ink_colors,
)
from utils.views import ConfirmView
from cogs.events import event_autocomplete


class RoundModal(ui.Modal):
    """Modal for adding a round, or editing one loaded when the modal opened."""

    def __init__(self, event: Event, previous: Optional[Round] = None):
        super().__init__(title=f"{'Edit' if previous else 'Add'} Round - {event.name}"[:45])
        self.event = event
        self.previous = previous

        limit = f"up to {TOURNAMENT_MAX_GAMES}" if event.event_type == "Tournament" else "any number"
        self.games = ui.TextInput(
            label=f"Games in order ({limit})",
            placeholder="WP LD WD  (W/L/D then P=on the play, D=on the draw)",
            default=format_games(previous.games) if previous and previous.games else None,
            style=discord.TextStyle.short,
            required=True
        )

        self.opponent_inks = ui.TextInput(
            label="Opponent ink colors (1-2)",
            placeholder=", ".join(INK_COLORS[:2]),
            default=", ".join(previous.opponent_ink_colors) if previous else None,
            style=discord.TextStyle.short,
            required=True
        )

        self.add_item(self.games)
        self.add_item(self.opponent_inks)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        """Record the round and adjust the event's counters."""
        log("ROUNDS", f"Round modal submitted by {interaction.user}", Colors.MAGENTA)
        log("ROUNDS", f"  games raw input: '{self.games.value}'", Colors.MAGENTA)
        log("ROUNDS", f"  inks raw input: '{self.opponent_inks.value}'", Colors.MAGENTA)

        owner_id = str(interaction.user.id)
        reconciler = interaction.client.reconciler

        try:
            games = parse_games(self.games.value)
            inks = parse_ink_colors(self.opponent_inks.value)
            if not inks:
                raise ValueError("Please select at least one opponent ink color.")

            if self.previous:
                await reconciler.edit_round(owner_id, self.event.id, self.previous, games, inks)
                title = "Round Updated"
            else:
                await reconciler.add_round(owner_id, self.event.id, games, inks)
                title = "Round Added"
        except (TrackerError, ValueError) as e:
            log("ROUNDS", f"  ERROR: {e}", Colors.RED)
            await interaction.response.send_message(
                embed=create_error_embed("Could Not Save Round", str(e)),
                ephemeral=True
            )
            return

        tally = derive_outcome(games)
        await interaction.response.send_message(
            embed=create_success_embed(
                title,
                f"**{format_outcome(tally.outcome)}** "
                f"{format_record(tally.wins, tally.losses, tally.draws)} "
                f"vs {format_inks(inks)}\n{format_games(games)}"
            ),
            ephemeral=True
        )


async def round_autocomplete(
    interaction: discord.Interaction,
    current: str
) -> list[app_commands.Choice[int]]:
    """Suggest rounds of the event already chosen in this command."""
    event_id = getattr(interaction.namespace, "event", None)
    if event_id is None:
        return []
    try:
        rounds = await interaction.client.db.fetch_rounds(str(interaction.user.id), int(event_id))
    except (TrackerError, ValueError):
        return []

    choices = []
    for number, r in enumerate(rounds, 1):
        tally = derive_outcome(r.games)
        label = f"R{number} {format_outcome(tally.outcome)} vs {format_inks(r.opponent_ink_colors)}"
        if current.lower() in label.lower():
            choices.append(app_commands.Choice(name=label, value=r.id))
    return choices[:25]


class Rounds(commands.Cog):
    """Cog for recording, editing and deleting rounds."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def _load(
        self,
        interaction: discord.Interaction,
        event_id: int,
        round_id: Optional[int] = None
    ) -> tuple[Optional[Event], Optional[Round]]:
        """Load an event (and optionally a round), replying with an error if missing."""
        owner_id = str(interaction.user.id)
        try:
            event = await self.bot.db.fetch_event_meta(owner_id, event_id)
            round = None
            if round_id is not None:
                round = await self.bot.db.fetch_round(owner_id, event_id, round_id)
        except TrackerError as e:
            await interaction.response.send_message(
                embed=create_error_embed("Not Found", str(e)),
                ephemeral=True
            )
            return None, None
        return event, round

    @app_commands.command(name="addround", description="Record a round in an event")
    @app_commands.describe(event="Event the round was played in")
    @app_commands.autocomplete(event=event_autocomplete)
    async def add_round(self, interaction: discord.Interaction, event: int) -> None:
        """Open the round form."""
        found, _ = await self._load(interaction, event)
        if found:
            await interaction.response.send_modal(RoundModal(found))

    @app_commands.command(name="editround", description="Edit a recorded round")
    @app_commands.describe(event="Event the round belongs to", round="Round to edit")
    @app_commands.autocomplete(event=event_autocomplete, round=round_autocomplete)
    async def edit_round(self, interaction: discord.Interaction, event: int, round: int) -> None:
        """Open the round form prefilled with the round as it is now."""
        found, previous = await self._load(interaction, event, round)
        if found:
            log("ROUNDS", f"Editing round {previous.id}: {format_games(previous.games)}", Colors.CYAN)
            await interaction.response.send_modal(RoundModal(found, previous))

    @app_commands.command(name="deleteround", description="Delete a recorded round")
    @app_commands.describe(event="Event the round belongs to", round="Round to delete")
    @app_commands.autocomplete(event=event_autocomplete, round=round_autocomplete)
    async def delete_round(self, interaction: discord.Interaction, event: int, round: int) -> None:
        """Ask for confirmation, then delete the round and uncount it."""
        found, existing = await self._load(interaction, event, round)
        if not found:
            return

        owner_id = str(interaction.user.id)

        async def action() -> None:
            await self.bot.reconciler.delete_round(owner_id, found.id, existing)

        tally = derive_outcome(existing.games)
        view = ConfirmView(
            interaction.user.id,
            action,
            "Round Deleted",
            f"The round was removed from **{found.name}**."
        )
        await interaction.response.send_message(
            embed=create_info_embed(
                "Delete Round?",
                f"**{format_outcome(tally.outcome)}** vs {format_inks(existing.opponent_ink_colors)} "
                f"({format_games(existing.games)}) in **{found.name}**"
            ),
            view=view,
            ephemeral=True
        )


async def setup(bot: commands.Bot) -> None:
    """Set up the rounds cog."""
    await bot.add_cog(Rounds(bot))
