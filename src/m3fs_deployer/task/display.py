"""Highlight colors for task progress lines."""

from __future__ import annotations

from typing import Optional

from rich.style import Style

_COLOR_MAP = {
    "green": "bright_green",
    "cyan": "bright_cyan",
    "yellow": "bright_yellow",
    "blue": "bright_blue",
    "magenta": "bright_magenta",
    "red": "bright_red",
    "white": "bright_white",
}


def resolve_color(color_name: Optional[str]) -> Optional[str]:
    """Map a configured color name to a rich color, or None for "none"/unknown."""
    if not color_name:
        return None
    return _COLOR_MAP.get(color_name.strip().lower())


def highlight(message: str, color: Optional[str], *, bold: bool = False) -> str:
    """Wrap `message` in ANSI styling; returns it unchanged when color is None."""
    if color is None:
        return message
    return Style(color=color, bold=bold or None).render(message)
