"""Deck management cog for Lorcana Match Tracker Bot."""

import discord
from discord import app_commands, ui
from discord.ext import commands

from config import ARCHETYPES, FORMATS
from engine import deck_list
from errors import TrackerError
from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    create_success_embed,
    format_inks,
    format_stats_block,
    parse_ink_colors,
    parse_list,
    truncate_string,
)
from utils.views import ConfirmView


FORMAT_CHOICES = [
    app_commands.Choice(name=full_name, value=short_name)
    for short_name, full_name in FORMATS.items()
]


async def deck_autocomplete(
    interaction: discord.Interaction,
    current: str
) -> list[app_commands.Choice[int]]:
    """Suggest the user's own decks."""
    decks = await interaction.client.db.list_decks(str(interaction.user.id))
    current = current.lower()
    return [
        app_commands.Choice(name=truncate_string(deck.name, 100), value=deck.id)
        for deck in decks
        if current in deck.name.lower()
    ][:25]


class DeckModal(ui.Modal):
    """Modal for creating a deck."""

    def __init__(self, format: str):
        super().__init__(title=f"New {FORMATS.get(format, format)} Deck")
        self.format = format

        self.name = ui.TextInput(
            label="Deck name",
            placeholder="Amber/Steel Songs",
            style=discord.TextStyle.short,
            max_length=100,
            required=True
        )

        self.ink_colors = ui.TextInput(
            label="Ink colors (up to 2)",
            placeholder="Amber, Steel",
            style=discord.TextStyle.short,
            required=True
        )

        self.archetypes = ui.TextInput(
            label="Archetypes (optional)",
            placeholder=", ".join(ARCHETYPES),
            style=discord.TextStyle.short,
            required=False
        )

        self.add_item(self.name)
        self.add_item(self.ink_colors)
        self.add_item(self.archetypes)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        """Create the deck."""
        log("DECKS", f"Deck modal submitted by {interaction.user}", Colors.MAGENTA)
        try:
            inks = parse_ink_colors(self.ink_colors.value)
            archetypes = parse_list(self.archetypes.value, ARCHETYPES, "archetype")
        except ValueError as e:
            await interaction.response.send_message(
                embed=create_error_embed("Invalid Deck", str(e)),
                ephemeral=True
            )
            return

        if not inks:
            await interaction.response.send_message(
                embed=create_error_embed("Invalid Deck", "Please select at least one ink color."),
                ephemeral=True
            )
            return

        try:
            deck = await interaction.client.db.create_deck(
                owner_id=str(interaction.user.id),
                name=self.name.value,
                ink_colors=inks,
                archetypes=archetypes,
                format=self.format
            )
        except TrackerError as e:
            await interaction.response.send_message(
                embed=create_error_embed("Could Not Save Deck", str(e)),
                ephemeral=True
            )
            return

        await interaction.response.send_message(
            embed=create_success_embed(
                "Deck Created",
                f"**{deck.name}** ({format_inks(deck.ink_colors)}, {FORMATS.get(deck.format, deck.format)})"
            ),
            ephemeral=True
        )


class Decks(commands.Cog):
    """Cog for managing decks and viewing deck statistics."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="adddeck", description="Add a deck you play")
    @app_commands.describe(format="Constructed format")
    @app_commands.choices(format=FORMAT_CHOICES)
    async def add_deck(
        self,
        interaction: discord.Interaction,
        format: app_commands.Choice[str]
    ) -> None:
        """Open the deck form."""
        await interaction.response.send_modal(DeckModal(format.value))

    @app_commands.command(name="decks", description="View your decks and their win rates")
    async def decks(self, interaction: discord.Interaction) -> None:
        """Display every deck with statistics across all of its events."""
        log("DECKS", f"decks command invoked by {interaction.user}", Colors.CYAN)
        await interaction.response.defer(ephemeral=True)

        try:
            summaries = await deck_list(self.bot.db, str(interaction.user.id))
        except TrackerError as e:
            await interaction.followup.send(
                embed=create_error_embed("Could Not Load Decks", str(e)),
                ephemeral=True
            )
            return

        if not summaries:
            await interaction.followup.send(
                embed=create_info_embed("Your Decks", "No decks yet! Use **/adddeck** to add one."),
                ephemeral=True
            )
            return

        embed = create_info_embed("Your Decks")
        for summary in summaries[:25]:  # Discord limit is 25 fields
            deck = summary.deck
            archetypes = f" | {', '.join(deck.archetypes)}" if deck.archetypes else ""
            embed.add_field(
                name=truncate_string(f"{deck.name} (#{deck.id})", 256),
                value=(
                    f"{format_inks(deck.ink_colors)} | {FORMATS.get(deck.format, deck.format)}{archetypes}\n"
                    f"**Events:** {summary.event_count}\n"
                    f"{format_stats_block(summary.stats)}"
                ),
                inline=False
            )

        await interaction.followup.send(embed=embed, ephemeral=True)

    @app_commands.command(name="deletedeck", description="Delete one of your decks")
    @app_commands.describe(deck="Deck to delete (its events are kept)")
    @app_commands.autocomplete(deck=deck_autocomplete)
    async def delete_deck(self, interaction: discord.Interaction, deck: int) -> None:
        """Ask for confirmation, then delete the deck."""
        owner_id = str(interaction.user.id)
        found = await self.bot.db.get_deck(owner_id, deck)
        if not found:
            await interaction.response.send_message(
                embed=create_error_embed("Deck Not Found", f"You have no deck #{deck}."),
                ephemeral=True
            )
            return

        async def action() -> None:
            await self.bot.db.delete_deck(owner_id, found.id)

        view = ConfirmView(
            interaction.user.id,
            action,
            "Deck Deleted",
            f"**{found.name}** was deleted. Its events were kept."
        )
        await interaction.response.send_message(
            embed=create_info_embed(
                "Delete Deck?",
                f"Delete **{found.name}**? Events played with it are kept."
            ),
            view=view,
            ephemeral=True
        )


async def setup(bot: commands.Bot) -> None:
    """Set up the decks cog."""
    await bot.add_cog(Decks(bot))
