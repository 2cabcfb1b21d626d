"""Shared Discord UI views for Lorcana Match Tracker Bot."""

import discord
from discord import ui
from typing import Awaitable, Callable

from errors import TrackerError
from utils.console import Colors, log
from utils.helpers import create_error_embed, create_success_embed


class ConfirmView(ui.View):
    """Confirm / Cancel buttons guarding a destructive action."""

    def __init__(
        self,
        owner_id: int,
        action: Callable[[], Awaitable[None]],
        success_title: str,
        success_message: str
    ):
        super().__init__(timeout=120)
        self.owner_id = owner_id
        self.action = action
        self.success_title = success_title
        self.success_message = success_message

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        """Only the user who asked can confirm."""
        return interaction.user.id == self.owner_id

    @ui.button(label="Delete", style=discord.ButtonStyle.danger)
    async def confirm(self, interaction: discord.Interaction, button: ui.Button) -> None:
        try:
            await self.action()
        except TrackerError as e:
            log("CONFIRM", f"Action failed: {e}", Colors.RED)
            await interaction.response.edit_message(
                embed=create_error_embed("Could Not Delete", str(e)),
                view=None
            )
            return

        await interaction.response.edit_message(
            embed=create_success_embed(self.success_title, self.success_message),
            view=None
        )
        self.stop()

    @ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: ui.Button) -> None:
        await interaction.response.edit_message(content="Cancelled.", embed=None, view=None)
        self.stop()
