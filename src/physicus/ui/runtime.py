"""Console runtime for tutoring sessions.

Walks the student through level and language selection, then runs the chat
loop. Tutor replies are redrawn live while they stream and printed with their
math typeset once complete.

Chat commands:
    /worksheet  generate a worksheet from the conversation so far
    /retry      retry a failed session start
    /reset      discard everything and start over
    /quit       leave (``exit`` and ``quit`` also work)
"""

import asyncio
import logging
import subprocess
from typing import Any, Awaitable, Callable, Optional, TypeVar

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.rule import Rule
from rich.spinner import Spinner
from rich.text import Text

from physicus.core.client import TutorService
from physicus.core.config import TutorConfig
from physicus.core.controller import AppState, Screen, TutorController
from physicus.core.errors import MissingCredentialError
from physicus.core.latex import TypesettingEngine, get_engine
from physicus.core.logging import LogComponent, LogLevel, configure_logging
from physicus.ui.conversation import render_conversation
from physicus.ui.selection import LanguageSelection, RigorSelection, SelectionScreen
from physicus.ui.worksheet import WorksheetView

logger = logging.getLogger(LogComponent.RUNTIME.value)

T = TypeVar("T")

QUIT_COMMANDS = ("/quit", "exit", "quit")
WORKSHEET_COMMAND = "/worksheet"
RETRY_COMMAND = "/retry"
RESET_COMMAND = "/reset"
PRINT_COMMANDS = ("p", "print")
CLOSE_COMMANDS = ("c", "close", "")

INVALID_CHOICE = "Please pick one of the listed options."
NOT_READY = "The tutor is not ready yet."
WORKSHEET_UNAVAILABLE = "Chat with the tutor a little before asking for a worksheet."
RETRY_UNAVAILABLE = "There is nothing to retry."
RETRY_HINT = f"Type {RETRY_COMMAND} to try again or {RESET_COMMAND} to start over."
CHAT_HELP = f"Type {WORKSHEET_COMMAND} for a practice worksheet, {RESET_COMMAND} to start over, {QUIT_COMMANDS[0]} to leave."


class ConsoleRuntime:
    """Runs the tutoring flow in a terminal.

    Attributes:
        controller: Session controller driving the flow
        console: Rich console used for all output and input
        engine: Typesetting engine for completed messages
        print_command: Command used to print worksheets on POSIX hosts
    """

    def __init__(
        self,
        controller: TutorController,
        console: Optional[Console] = None,
        engine: Optional[TypesettingEngine] = None,
        print_command: str = "lpr",
    ) -> None:
        self.controller = controller
        self.console = console or Console()
        self.engine = engine
        self.print_command = print_command
        self.rigor_screen = RigorSelection(on_select=controller.select_level)
        self.language_screen = LanguageSelection(
            on_select=lambda language: controller.select_language(language.code)
        )
        self._running = False
        self._epoch = controller.state.epoch
        self._shown = 0
        self._last_error: Optional[str] = None

    async def _read(self, prompt: str) -> str:
        return await asyncio.to_thread(self.console.input, prompt)

    def _sync(self, state: AppState) -> None:
        """Forget printed output from before a reset."""
        if state.epoch != self._epoch:
            self._epoch = state.epoch
            self._shown = 0
            self._last_error = None

    def _pending(self, start: int, state: AppState) -> RenderableType:
        parts = [render_conversation(state.messages[start:], state.is_streaming, None)]
        if state.is_loading and not state.is_streaming:
            parts.append(Spinner("dots", text=Text(" Thinking...", style="dim")))
        return Group(*parts)

    def _flush(self) -> None:
        """Print the messages that have not been printed yet, fully typeset."""
        state = self.controller.state
        self._sync(state)
        fresh = state.messages[self._shown:]
        if fresh:
            self.console.print(render_conversation(fresh, state.is_streaming, self.engine))
        self._shown = len(state.messages)

    async def _with_live(self, action: Callable[[], Awaitable[T]]) -> T:
        """Await ``action`` while redrawing the messages it adds."""
        start = self._shown
        with Live(
            self._pending(start, self.controller.state),
            console=self.console,
            refresh_per_second=12,
            transient=True,
        ) as live:
            unsubscribe = self.controller.subscribe(
                lambda state: live.update(self._pending(start, state))
            )
            try:
                result = await action()
            finally:
                unsubscribe()
        self._flush()
        return result

    def _show_error(self, state: AppState) -> None:
        error = state.visible_error
        if error and error != self._last_error:
            self.console.print(Text(error, style="bold red"))
            if state.can_retry_initialization:
                self.console.print(Text(RETRY_HINT, style="dim"))
        self._last_error = error

    async def _select(self, screen: SelectionScreen[Any], state: AppState) -> None:
        self.console.print(screen.render(error=state.visible_error))
        self._last_error = state.visible_error
        raw = await self._read("> ")
        if raw.strip().lower() in QUIT_COMMANDS:
            self._running = False
            return
        if not await self._with_live(lambda: screen.choose(raw)):
            self.console.print(Text(INVALID_CHOICE, style="red"))

    async def _show_worksheet(self, state: AppState) -> None:
        view = WorksheetView(
            state.worksheet,
            on_close=self.controller.close_worksheet,
            engine=self.engine,
            print_command=self.print_command,
        )
        self.console.print(view.render())
        choice = (await self._read("Worksheet> ")).strip().lower()
        if choice in PRINT_COMMANDS:
            try:
                await asyncio.to_thread(view.print)
                self.console.print(Text(f"Sent '{view.worksheet.title}' to the printer.", style="green"))
            except (OSError, subprocess.CalledProcessError) as e:
                logger.error(f"Printing failed: {e}")
                self.console.print(Text(f"Printing failed: {e}", style="bold red"))
        elif choice in CLOSE_COMMANDS:
            await view.close()
        elif choice in QUIT_COMMANDS:
            self._running = False

    async def _chat(self, state: AppState) -> None:
        self._show_error(state)
        text = (await self._read("\nYou: ")).strip()
        command = text.lower()
        if not text:
            return
        if command in QUIT_COMMANDS:
            self._running = False
        elif command == RESET_COMMAND:
            await self.controller.reset()
            self.console.print(Rule("New session", style="cyan"))
        elif command == RETRY_COMMAND:
            if not state.can_retry_initialization:
                self.console.print(Text(RETRY_UNAVAILABLE, style="dim"))
                return
            await self._with_live(self.controller.retry_initialization)
        elif command == WORKSHEET_COMMAND:
            if not state.can_request_worksheet:
                self.console.print(Text(WORKSHEET_UNAVAILABLE, style="dim"))
                return
            with self.console.status("Generating worksheet..."):
                await self.controller.request_worksheet()
        elif not state.input_enabled:
            self.console.print(Text(NOT_READY, style="dim"))
        else:
            await self._with_live(lambda: self.controller.send_message(text))

    async def step(self) -> None:
        """Render the current screen and handle one line of input."""
        state = self.controller.state
        self._sync(state)
        if state.screen == Screen.RIGOR_SELECTION:
            await self._select(self.rigor_screen, state)
        elif state.screen == Screen.LANGUAGE_SELECTION:
            await self._select(self.language_screen, state)
            if self.controller.state.screen == Screen.CHAT:
                self.console.print(Text(CHAT_HELP, style="dim"))
        elif state.show_worksheet and state.worksheet is not None:
            await self._show_worksheet(state)
        else:
            await self._chat(state)

    async def start(self) -> None:
        """Run until the student quits."""
        logger.info("Starting tutoring session. Type /quit to stop.")
        self._running = True
        while self._running:
            try:
                await self.step()
            except (KeyboardInterrupt, EOFError):
                logger.info("Tutoring session interrupted by user.")
                break
            except Exception as e:
                logger.error(f"Error in console loop: {e}")
                self.console.print(Text(f"[Error] {e}", style="bold red"))
        await self.stop()
        logger.info("Tutoring session ended.")

    async def stop(self) -> None:
        self._running = False


def main() -> None:
    """Console entry point."""
    try:
        config = TutorConfig.from_env()
    except MissingCredentialError as e:
        raise SystemExit(str(e))

    configure_logging(
        default_level=config.log_level,
        component_levels={component: config.log_level for component in LogComponent},
        log_file=config.log_file,
        console_level=LogLevel.WARNING,
    )

    controller = TutorController(TutorService(config))
    runtime = ConsoleRuntime(controller, engine=get_engine(), print_command=config.print_command)
    try:
        asyncio.run(runtime.start())
    except KeyboardInterrupt:
        pass


__all__ = ["ConsoleRuntime", "main"]
