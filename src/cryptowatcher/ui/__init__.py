"""Terminal rendering -- pure frame construction plus the live display."""

from cryptowatcher.ui.display import TerminalDisplay
from cryptowatcher.ui.renderer import render

__all__ = ["TerminalDisplay", "render"]
