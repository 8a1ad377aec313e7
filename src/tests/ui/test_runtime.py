"""Tests for the console runtime.

Input is scripted by replacing ``_read``; output goes to a recording console.
"""

import io
import threading

import pytest
from rich.console import Console

from physicus.core.controller import Phase, Screen, TutorController
from physicus.core.errors import ErrorKind, TutorServiceError
from physicus.core.models import RigorLevel
from physicus.ui import runtime as runtime_module
from physicus.ui import worksheet as worksheet_module
from physicus.ui.runtime import INVALID_CHOICE, RETRY_HINT, ConsoleRuntime
from tests.conftest import FakeEngine, FakeService


def scripted_runtime(service: FakeService, inputs) -> ConsoleRuntime:
    """Runtime whose input comes from ``inputs``; callables are invoked for their value."""
    console = io.StringIO()
    runtime = ConsoleRuntime(
        TutorController(service),
        console=Console(file=console, width=120, record=True, color_system=None),
        engine=FakeEngine(),
    )
    pending = list(inputs)

    async def read(prompt: str) -> str:
        if not pending:
            raise EOFError
        value = pending.pop(0)
        return value() if callable(value) else value

    runtime._read = read
    return runtime


def output(runtime: ConsoleRuntime) -> str:
    return runtime.console.export_text()


class TestConsoleRuntime:
    """Test suite for a full console session."""

    @pytest.mark.asyncio
    async def test_full_session(self, fake_service: FakeService):
        fake_service.replies.extend([["¡Hola", ", soy PAM!"], ["¿Qué ", "piensas?"]])
        runtime = scripted_runtime(fake_service, ["2", "2", "¿Qué es la inercia?", "/worksheet", "c", "/quit"])

        await runtime.start()

        state = runtime.controller.state
        assert state.level == RigorLevel.HIGH_SCHOOL
        assert state.language == "Spanish"
        assert [m.text for m in state.messages] == ["¡Hola, soy PAM!", "¿Qué es la inercia?", "¿Qué piensas?"]
        assert state.phase == Phase.SESSION_ACTIVE
        assert state.worksheet is not None

        text = output(runtime)
        assert "¡Hola, soy PAM!" in text
        assert "Newton's Laws" in text
        assert "Answer Key" in text

    @pytest.mark.asyncio
    async def test_invalid_choice(self, fake_service: FakeService):
        runtime = scripted_runtime(fake_service, ["9", "/quit"])
        await runtime.start()
        assert runtime.controller.state.screen == Screen.RIGOR_SELECTION
        assert INVALID_CHOICE in output(runtime)

    @pytest.mark.asyncio
    async def test_reset(self, fake_service: FakeService):
        runtime = scripted_runtime(fake_service, ["1", "English", "/reset", "/quit"])
        await runtime.start()
        state = runtime.controller.state
        assert state.screen == Screen.RIGOR_SELECTION
        assert state.epoch == 1

    @pytest.mark.asyncio
    async def test_retry_after_failed_start(self, fake_service: FakeService):
        fake_service.turn_error = TutorServiceError(ErrorKind.UNKNOWN, "model not found")

        def recover():
            fake_service.turn_error = None
            return "/retry"

        runtime = scripted_runtime(fake_service, ["1", "English", recover, "/quit"])
        await runtime.start()

        text = output(runtime)
        assert "Failed to initialize chat: model not found" in text
        assert RETRY_HINT in text
        assert runtime.controller.state.phase == Phase.SESSION_ACTIVE

    @pytest.mark.asyncio
    async def test_worksheet_needs_conversation(self, fake_service: FakeService):
        runtime = scripted_runtime(fake_service, ["1", "English", "/worksheet", "/quit"])
        await runtime.start()
        assert fake_service.topic_requests == []
        assert runtime_module.WORKSHEET_UNAVAILABLE in output(runtime)

    @pytest.mark.asyncio
    async def test_print_runs_off_event_loop(self, fake_service: FakeService, monkeypatch):
        threads = []
        monkeypatch.setattr(worksheet_module, "send_to_printer", lambda path, command: threads.append(threading.get_ident()))
        runtime = scripted_runtime(fake_service, ["1", "English", "What is inertia?", "/worksheet", "p", "/quit"])

        await runtime.start()

        assert len(threads) == 1
        assert threads[0] != threading.get_ident()
        assert "Sent 'Newton's Laws' to the printer." in output(runtime)

    @pytest.mark.asyncio
    async def test_end_of_input_stops(self, fake_service: FakeService):
        runtime = scripted_runtime(fake_service, [])
        await runtime.start()
        assert not runtime._running


class TestMain:
    """Test suite for the console entry point."""

    def test_missing_key_exits(self, monkeypatch):
        monkeypatch.delenv("API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setattr("physicus.core.config.load_dotenv", lambda: None)
        with pytest.raises(SystemExit, match="API_KEY environment variable not set"):
            runtime_module.main()
