"""Event tracking cog for Lorcana Match Tracker Bot."""

import discord
from discord import app_commands, ui
from discord.ext import commands
from typing import Optional

from config import EVENT_TYPES, FORMATS
from engine import event_detail, event_list, stored_badge
from errors import TrackerError
from models import Event
from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    create_success_embed,
    format_games,
    format_inks,
    format_outcome,
    format_record,
    format_stats_block,
    format_win_rate,
    parse_date,
    truncate_string,
)
from utils.views import ConfirmView
from cogs.decks import FORMAT_CHOICES, deck_autocomplete


TYPE_CHOICES = [app_commands.Choice(name=t, value=t) for t in EVENT_TYPES]


async def event_autocomplete(
    interaction: discord.Interaction,
    current: str
) -> list[app_commands.Choice[int]]:
    """Suggest the user's own events."""
    events = await interaction.client.db.list_events(str(interaction.user.id))
    current = current.lower()
    return [
        app_commands.Choice(
            name=truncate_string(f"{event.name} ({event.start_date.isoformat()})", 100),
            value=event.id
        )
        for event in events
        if current in event.name.lower()
    ][:25]


class EventModal(ui.Modal):
    """Modal for creating or editing an event."""

    def __init__(
        self,
        event_type: str,
        format: str,
        deck_id: Optional[int],
        event: Optional[Event] = None,
        detach_deck: bool = False
    ):
        super().__init__(title=f"{'Edit' if event else 'New'} {event_type}")
        self.event_type = event_type
        self.format = format
        self.deck_id = deck_id
        self.event = event
        self.detach_deck = detach_deck

        self.name = ui.TextInput(
            label="Event name",
            placeholder="Saturday Set Championship",
            default=event.name if event else None,
            style=discord.TextStyle.short,
            max_length=100,
            required=True
        )

        self.start_date = ui.TextInput(
            label="Start date (YYYY-MM-DD, blank for today)",
            placeholder="2024-06-01",
            default=event.start_date.isoformat() if event else None,
            style=discord.TextStyle.short,
            required=False
        )

        self.add_item(self.name)
        self.add_item(self.start_date)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        """Create or update the event."""
        log("EVENTS", f"Event modal submitted by {interaction.user}", Colors.MAGENTA)
        owner_id = str(interaction.user.id)
        db = interaction.client.db

        try:
            start_date = parse_date(self.start_date.value)
            if self.event:
                await db.update_event(
                    owner_id=owner_id,
                    event_id=self.event.id,
                    name=self.name.value,
                    event_type=self.event_type,
                    start_date=start_date,
                    format=self.format,
                    user_deck_id=self.deck_id,
                    detach_deck=self.detach_deck
                )
                title = "Event Updated"
                event_id = self.event.id
            else:
                event = await db.create_event(
                    owner_id=owner_id,
                    name=self.name.value,
                    event_type=self.event_type,
                    start_date=start_date,
                    format=self.format,
                    user_deck_id=self.deck_id
                )
                title = "Event Created"
                event_id = event.id
        except (TrackerError, ValueError) as e:
            log("EVENTS", f"  ERROR: {e}", Colors.RED)
            await interaction.response.send_message(
                embed=create_error_embed("Could Not Save Event", str(e)),
                ephemeral=True
            )
            return

        await interaction.response.send_message(
            embed=create_success_embed(
                title,
                f"**{self.name.value}** (#{event_id}) on {start_date.isoformat()}\n"
                "Use **/addround** to record rounds."
            ),
            ephemeral=True
        )


class Events(commands.Cog):
    """Cog for creating events and viewing event statistics."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="newevent", description="Start tracking a tournament or playtest")
    @app_commands.describe(
        type="Tournament rounds are best of three; playtests have no limit",
        format="Constructed format",
        deck="The deck you are playing"
    )
    @app_commands.choices(type=TYPE_CHOICES, format=FORMAT_CHOICES)
    @app_commands.autocomplete(deck=deck_autocomplete)
    async def new_event(
        self,
        interaction: discord.Interaction,
        type: app_commands.Choice[str],
        format: app_commands.Choice[str],
        deck: Optional[int] = None
    ) -> None:
        """Open the event form."""
        await interaction.response.send_modal(EventModal(type.value, format.value, deck))

    @app_commands.command(name="editevent", description="Edit an event's details")
    @app_commands.describe(
        event="Event to edit",
        type="New event type (optional)",
        format="New format (optional)",
        deck="New deck (optional)",
        no_deck="Detach the event from its deck"
    )
    @app_commands.choices(type=TYPE_CHOICES, format=FORMAT_CHOICES)
    @app_commands.autocomplete(event=event_autocomplete, deck=deck_autocomplete)
    async def edit_event(
        self,
        interaction: discord.Interaction,
        event: int,
        type: Optional[app_commands.Choice[str]] = None,
        format: Optional[app_commands.Choice[str]] = None,
        deck: Optional[int] = None,
        no_deck: bool = False
    ) -> None:
        """Open the event form prefilled with the current details."""
        try:
            existing = await self.bot.db.fetch_event_meta(str(interaction.user.id), event)
        except TrackerError as e:
            await interaction.response.send_message(
                embed=create_error_embed("Event Not Found", str(e)),
                ephemeral=True
            )
            return

        await interaction.response.send_modal(EventModal(
            type.value if type else existing.event_type,
            format.value if format else existing.format,
            None if no_deck else (deck if deck is not None else existing.user_deck_id),
            event=existing,
            detach_deck=no_deck
        ))

    @app_commands.command(name="events", description="View your events and their win rates")
    @app_commands.describe(type="Only show this event type")
    @app_commands.choices(type=TYPE_CHOICES)
    async def events(
        self,
        interaction: discord.Interaction,
        type: Optional[app_commands.Choice[str]] = None
    ) -> None:
        """Display events, newest first, with live statistics."""
        log("EVENTS", f"events command invoked by {interaction.user}", Colors.CYAN)
        await interaction.response.defer(ephemeral=True)

        try:
            summaries = await event_list(
                self.bot.db,
                str(interaction.user.id),
                type.value if type else None
            )
        except TrackerError as e:
            await interaction.followup.send(
                embed=create_error_embed("Could Not Load Events", str(e)),
                ephemeral=True
            )
            return

        if not summaries:
            await interaction.followup.send(
                embed=create_info_embed("Your Events", "No events yet! Use **/newevent** to start one."),
                ephemeral=True
            )
            return

        embed = create_info_embed(f"Your {type.value + ' ' if type else ''}Events")
        for summary in summaries[:25]:
            event = summary.event
            stats = summary.stats
            embed.add_field(
                name=truncate_string(f"{event.name} (#{event.id})", 256),
                value=(
                    f"{event.event_type} | {event.start_date.isoformat()} | "
                    f"{FORMATS.get(event.format, event.format)}\n"
                    f"**Deck:** {summary.deck_name}\n"
                    f"**Record:** {format_record(stats.matches_won, stats.matches_lost, stats.matches_drawn)}"
                    f" | **Match WR:** {format_win_rate(stats.match_win_rate)}"
                    f" | **Game WR:** {format_win_rate(stats.game_win_rate)}"
                ),
                inline=False
            )

        await interaction.followup.send(embed=embed, ephemeral=True)

    @app_commands.command(name="event", description="View an event's rounds and statistics")
    @app_commands.describe(event="Event to view")
    @app_commands.autocomplete(event=event_autocomplete)
    async def view_event(self, interaction: discord.Interaction, event: int) -> None:
        """Display a single event in detail."""
        log("EVENTS", f"event command invoked by {interaction.user} for {event}", Colors.CYAN)
        await interaction.response.defer(ephemeral=True)

        try:
            detail = await event_detail(self.bot.db, str(interaction.user.id), event)
        except TrackerError as e:
            await interaction.followup.send(
                embed=create_error_embed("Could Not Load Event", str(e)),
                ephemeral=True
            )
            return

        meta = detail.event
        embed = create_info_embed(
            f"{meta.name} (#{meta.id})",
            f"{meta.event_type} | {meta.start_date.isoformat()} | "
            f"{FORMATS.get(meta.format, meta.format)}\n**Deck:** {detail.deck_name}"
        )
        embed.add_field(name="Statistics", value=format_stats_block(detail.stats), inline=False)

        if detail.rounds:
            lines = []
            for number, summary in enumerate(detail.rounds, 1):
                tally = summary.tally
                lines.append(
                    f"`R{number}` **{format_outcome(tally.outcome)}** "
                    f"{format_record(tally.wins, tally.losses, tally.draws)} "
                    f"vs {format_inks(summary.round.opponent_ink_colors)} "
                    f"- {format_games(summary.round.games)} (id {summary.round.id})"
                )
            embed.add_field(name="Rounds", value=truncate_string("\n".join(lines), 1024), inline=False)
        else:
            embed.add_field(name="Rounds", value="No rounds yet. Use **/addround**.", inline=False)

        footer = f"Stored record: {stored_badge(meta)}"
        if detail.drift:
            footer += " (out of date, showing recomputed stats)"
        embed.set_footer(text=footer)

        await interaction.followup.send(embed=embed, ephemeral=True)

    @app_commands.command(name="deleteevent", description="Delete an event and all of its rounds")
    @app_commands.describe(event="Event to delete")
    @app_commands.autocomplete(event=event_autocomplete)
    async def delete_event(self, interaction: discord.Interaction, event: int) -> None:
        """Ask for confirmation, then delete the event and its rounds."""
        owner_id = str(interaction.user.id)
        try:
            existing = await self.bot.db.fetch_event_meta(owner_id, event)
        except TrackerError as e:
            await interaction.response.send_message(
                embed=create_error_embed("Event Not Found", str(e)),
                ephemeral=True
            )
            return

        async def action() -> None:
            await self.bot.db.delete_event(owner_id, existing.id)

        view = ConfirmView(
            interaction.user.id,
            action,
            "Event Deleted",
            f"**{existing.name}** and all of its rounds were deleted."
        )
        await interaction.response.send_message(
            embed=create_info_embed(
                "Delete Event?",
                f"Delete **{existing.name}** and all of its rounds? This cannot be undone."
            ),
            view=view,
            ephemeral=True
        )


async def setup(bot: commands.Bot) -> None:
    """Set up the events cog."""
    await bot.add_cog(Events(bot))
