"""Selection screens for the rigor level and the session language.

Each screen lists a fixed catalog as numbered, mutually exclusive options. A
valid choice calls ``on_select`` once; the controller then moves on and the
screen is replaced.
"""

import inspect
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from physicus.core.models import LANGUAGES, Language, RigorLevel, find_language

OptionT = TypeVar("OptionT")


class SelectionScreen(Generic[OptionT]):
    """Numbered list of options with a single-choice callback."""

    title: str = ""
    prompt: str = ""

    def __init__(self, on_select: Callable[[OptionT], Any]) -> None:
        self.on_select = on_select

    @property
    def options(self) -> Sequence[OptionT]:
        raise NotImplementedError

    def label(self, option: OptionT) -> str:
        raise NotImplementedError

    def matches(self, option: OptionT, raw: str) -> bool:
        return self.label(option).casefold() == raw.casefold()

    def resolve(self, raw: str) -> Optional[OptionT]:
        """Find the option named by a 1-based number or by its label."""
        raw = raw.strip()
        if not raw:
            return None
        if raw.isdigit():
            index = int(raw) - 1
            if 0 <= index < len(self.options):
                return self.options[index]
            return None
        for option in self.options:
            if self.matches(option, raw):
                return option
        return None

    async def choose(self, raw: str) -> bool:
        """Select the option named by ``raw``; returns whether anything matched."""
        option = self.resolve(raw)
        if option is None:
            return False
        result = self.on_select(option)
        if inspect.isawaitable(result):
            await result
        return True

    def render(self, error: Optional[str] = None) -> RenderableType:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold cyan", justify="right")
        table.add_column()
        for number, option in enumerate(self.options, start=1):
            table.add_row(f"{number}.", self.label(option))

        footer = Text(error, style="bold red") if error else Text(self.prompt, style="dim")
        return Panel(Group(table, Text(""), footer), title=self.title, border_style="cyan", expand=False)


class RigorSelection(SelectionScreen[RigorLevel]):
    title = "Welcome to Physicus Aurelius Maximus"
    prompt = "To get started, please select your current physics level."

    @property
    def options(self) -> List[RigorLevel]:
        return list(RigorLevel)

    def label(self, option: RigorLevel) -> str:
        return option.value


class LanguageSelection(SelectionScreen[Language]):
    title = "Select Language"
    prompt = "Please choose the language for your session."

    @property
    def options(self) -> Sequence[Language]:
        return LANGUAGES

    def label(self, option: Language) -> str:
        return option.name

    def matches(self, option: Language, raw: str) -> bool:
        return find_language(raw) == option
