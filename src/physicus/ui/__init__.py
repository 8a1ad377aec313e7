"""Terminal views and the console runtime."""

from physicus.ui.conversation import render_conversation
from physicus.ui.runtime import ConsoleRuntime, main
from physicus.ui.selection import LanguageSelection, RigorSelection
from physicus.ui.worksheet import WorksheetView, render_worksheet

__all__ = [
    'ConsoleRuntime',
    'LanguageSelection',
    'RigorSelection',
    'WorksheetView',
    'main',
    'render_conversation',
    'render_worksheet',
]
