"""Worksheet view: questions, a sorted answer key, print and close."""

import inspect
import logging
import os
import shlex
import subprocess
import sys
import tempfile
from typing import Any, Callable, List, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from physicus.core.latex import TypesettingEngine, render_math
from physicus.core.logging import LogComponent
from physicus.core.models import Worksheet

logger = logging.getLogger(LogComponent.UI.value)

ANSWER_KEY_TITLE = "Answer Key"


def _numbered_rows(worksheet: Worksheet, engine: Optional[TypesettingEngine]):
    questions = [
        (question.question_number, render_math(question.question_text, engine))
        for question in worksheet.questions
    ]
    answers = [
        (answer.question_number, render_math(answer.answer_text, engine))
        for answer in worksheet.sorted_answer_key()
    ]
    return questions, answers


def _numbered_table(rows) -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right", no_wrap=True)
    table.add_column()
    for number, text in rows:
        table.add_row(f"{number}.", Text(text))
    return table


def render_worksheet(worksheet: Worksheet, engine: Optional[TypesettingEngine]) -> RenderableType:
    """Questions in the order given, then the answer key sorted by number."""
    questions, answers = _numbered_rows(worksheet, engine)
    body = Group(
        _numbered_table(questions),
        Text(""),
        Rule(ANSWER_KEY_TITLE, style="cyan", characters="╌"),
        _numbered_table(answers),
    )
    return Panel(
        body,
        title=Text(worksheet.title, style="bold cyan"),
        subtitle=Text("[p]rint · [c]lose", style="dim"),
        border_style="cyan",
    )


def worksheet_text(worksheet: Worksheet, engine: Optional[TypesettingEngine]) -> str:
    """Plain-text copy of the worksheet for printing."""
    questions, answers = _numbered_rows(worksheet, engine)
    lines: List[str] = [worksheet.title, "=" * len(worksheet.title), ""]
    lines.extend(f"{number}. {text}" for number, text in questions)
    lines.extend(["", "", ANSWER_KEY_TITLE, "-" * len(ANSWER_KEY_TITLE), ""])
    lines.extend(f"{number}. {text}" for number, text in answers)
    return "\n".join(lines) + "\n"


def send_to_printer(path: str, print_command: str = "lpr") -> None:
    """Hand a file to the platform's print facility."""
    if sys.platform == "win32":
        os.startfile(path, "print")
        return
    subprocess.run([*shlex.split(print_command), path], check=True)


class WorksheetView:
    """Overlay showing one worksheet.

    Attributes:
        worksheet: The worksheet to show
        on_close: Called when the user dismisses the overlay
        engine: Typesetting engine for the math in questions and answers
        print_command: Command used by ``print`` on POSIX hosts
    """

    def __init__(
        self,
        worksheet: Worksheet,
        on_close: Callable[[], Any],
        engine: Optional[TypesettingEngine] = None,
        print_command: str = "lpr",
    ) -> None:
        self.worksheet = worksheet
        self.on_close = on_close
        self.engine = engine
        self.print_command = print_command

    def render(self) -> RenderableType:
        return render_worksheet(self.worksheet, self.engine)

    def print(self) -> str:
        """Write the worksheet to a temporary file and print it. Returns the file path.

        Blocks until the print command returns; run it off the event loop. On
        POSIX the file is removed once the command has spooled it. The Windows
        print verb reads it later, so there it is left in place.
        """
        with tempfile.NamedTemporaryFile(
            "w", suffix=".txt", prefix="worksheet-", delete=False, encoding="utf-8"
        ) as handle:
            handle.write(worksheet_text(self.worksheet, self.engine))
        logger.info(f"Printing worksheet '{self.worksheet.title}' from {handle.name}")
        try:
            send_to_printer(handle.name, self.print_command)
        finally:
            if sys.platform != "win32":
                os.remove(handle.name)
        return handle.name

    async def close(self) -> None:
        result = self.on_close()
        if inspect.isawaitable(result):
            await result
