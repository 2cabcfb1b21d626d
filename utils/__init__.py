"""Utility modules for Lorcana Match Tracker Bot."""

from utils.console import Colors, log
from utils.helpers import (
    parse_games,
    parse_ink_colors,
    format_games,
    format_record,
    format_win_rate,
    create_error_embed,
    create_success_embed,
    create_info_embed,
    truncate_string,
)

__all__ = [
    "Colors",
    "log",
    "parse_games",
    "parse_ink_colors",
    "format_games",
    "format_record",
    "format_win_rate",
    "create_error_embed",
    "create_success_embed",
    "create_info_embed",
    "truncate_string",
]
