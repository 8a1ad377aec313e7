"""Tests for TutorController against a fake service.

These run the whole startup, chat and worksheet workflows: every effect the
transitions request is carried out by the controller and answered by
``FakeService``.
"""

import httpx
import pytest

from physicus.core.client.prompts import GREETING_TRIGGER
from physicus.core.controller import AppState, Phase, Screen, TutorController
from physicus.core.errors import NO_TOPICS_FOUND, NETWORK_FAILURE, RATE_LIMITED, ErrorKind, TutorServiceError
from physicus.core.models import RigorLevel, Sender, ValidationResult
from tests.conftest import FakeService


@pytest.fixture
def controller(fake_service: FakeService) -> TutorController:
    return TutorController(fake_service)


async def start_session(controller: TutorController, greeting=("¡Hola", ", soy PAM!")) -> AppState:
    controller.service.replies.append(list(greeting))
    await controller.select_level(RigorLevel.HIGH_SCHOOL)
    return await controller.select_language("Spanish")


class TestStartup:
    """Test suite for validation and session initialization."""

    @pytest.mark.asyncio
    async def test_greeting(self, controller: TutorController, fake_service: FakeService):
        state = await start_session(controller)
        assert state.phase == Phase.SESSION_ACTIVE
        assert [(m.sender, m.text) for m in state.messages] == [(Sender.ASSISTANT, "¡Hola, soy PAM!")]
        assert fake_service.turns == [GREETING_TRIGGER]
        assert fake_service.sessions[0].language == "Spanish"
        assert controller.session is fake_service.sessions[0]
        assert state.input_enabled

    @pytest.mark.asyncio
    async def test_validation_failure(self, fake_service: FakeService):
        fake_service.validation = ValidationResult(
            valid=False,
            error="TypeError: Failed to fetch",
            kind=ErrorKind.NETWORK_UNAVAILABLE,
        )
        controller = TutorController(fake_service)
        state = await start_session(controller)
        assert state.screen == Screen.LANGUAGE_SELECTION
        assert state.error == f"API connection failed: {NETWORK_FAILURE}"
        assert fake_service.sessions == []
        assert controller.session is None

    @pytest.mark.asyncio
    async def test_initialization_failure_and_retry(self, controller: TutorController, fake_service: FakeService):
        fake_service.turn_error = TutorServiceError(ErrorKind.UNKNOWN, "model not found")
        state = await start_session(controller)
        assert state.phase == Phase.INITIALIZATION_FAILED
        assert state.error == "Failed to initialize chat: model not found"
        assert state.messages == ()
        assert controller.session is None

        fake_service.turn_error = None
        state = await controller.retry_initialization()
        assert state.phase == Phase.SESSION_ACTIVE
        assert state.messages[0].text == "¡Hola, soy PAM!"
        assert state.error is None

    @pytest.mark.asyncio
    async def test_stream_failure_during_greeting(self, controller: TutorController, fake_service: FakeService):
        fake_service.stream_error = httpx.ReadError("connection reset")
        state = await start_session(controller)
        assert state.phase == Phase.INITIALIZATION_FAILED
        assert state.error == f"Failed to initialize chat: {NETWORK_FAILURE}"


class TestChat:
    """Test suite for chat turns."""

    @pytest.mark.asyncio
    async def test_reply_streams_into_new_message(self, controller: TutorController, fake_service: FakeService):
        await start_session(controller)
        fake_service.replies.append(["¿Qué ", "crees ", "tú?"])
        snapshots = []
        controller.subscribe(snapshots.append)

        state = await controller.send_message("¿Qué es la inercia?")

        assert [m.text for m in state.messages[1:]] == ["¿Qué es la inercia?", "¿Qué crees tú?"]
        assert fake_service.turns[-1] == "¿Qué es la inercia?"
        assert not state.is_loading
        partial = [s.messages[-1].text for s in snapshots if s.is_streaming]
        assert partial[-1] == "¿Qué crees tú?"
        assert "¿Qué " in partial

    @pytest.mark.asyncio
    async def test_turn_failure(self, controller: TutorController, fake_service: FakeService, rate_limit_error):
        await start_session(controller)
        fake_service.turn_error = rate_limit_error
        state = await controller.send_message("hello")
        assert state.error == f"Sorry, I encountered an error: {RATE_LIMITED}"
        assert state.messages[-1].text == "hello"
        assert state.input_enabled

    @pytest.mark.asyncio
    async def test_unsubscribe(self, controller: TutorController):
        seen = []
        unsubscribe = controller.subscribe(seen.append)
        await controller.select_level(RigorLevel.UNDERGRADUATE)
        unsubscribe()
        await controller.reset()
        assert len(seen) == 1


class TestWorksheet:
    """Test suite for the worksheet workflow."""

    @pytest.mark.asyncio
    async def test_generate(self, controller: TutorController, fake_service: FakeService, sample_worksheet):
        await start_session(controller)
        await controller.send_message("Explain Newton's laws")
        state = await controller.request_worksheet()

        assert state.phase == Phase.WORKSHEET_SHOWN
        assert state.worksheet == sample_worksheet
        assert len(fake_service.topic_requests[0]) == 3
        assert fake_service.worksheet_requests == [["Newton's laws"]]

        state = await controller.close_worksheet()
        assert state.phase == Phase.SESSION_ACTIVE

    @pytest.mark.asyncio
    async def test_no_topics_skips_generation(self, controller: TutorController, fake_service: FakeService):
        fake_service.topics = []
        await start_session(controller)
        await controller.send_message("hi")
        state = await controller.request_worksheet()
        assert state.worksheet_error == NO_TOPICS_FOUND
        assert fake_service.worksheet_requests == []
        assert state.worksheet is None

    @pytest.mark.asyncio
    async def test_failure(self, controller: TutorController, fake_service: FakeService):
        fake_service.worksheet_error = TutorServiceError(ErrorKind.MALFORMED, "bad json")
        await start_session(controller)
        await controller.send_message("hi")
        state = await controller.request_worksheet()
        assert state.worksheet_error.startswith("Failed to generate worksheet:")
        assert state.input_enabled

    @pytest.mark.asyncio
    async def test_too_early(self, controller: TutorController, fake_service: FakeService):
        await start_session(controller)
        state = await controller.request_worksheet()
        assert fake_service.topic_requests == []
        assert state.phase == Phase.SESSION_ACTIVE


class TestReset:
    """Test suite for reset."""

    @pytest.mark.asyncio
    async def test_reset_discards_session(self, controller: TutorController):
        await start_session(controller)
        state = await controller.reset()
        assert state == AppState(epoch=1)
        assert controller.session is None

    @pytest.mark.asyncio
    async def test_new_session_after_reset(self, controller: TutorController, fake_service: FakeService):
        await start_session(controller)
        await controller.reset()
        fake_service.replies.append(["Hi, I'm PAM!"])
        await controller.select_level(RigorLevel.UNDERGRADUATE)
        state = await controller.select_language("English")
        assert state.epoch == 1
        assert [m.text for m in state.messages] == ["Hi, I'm PAM!"]
        assert fake_service.sessions[-1].language == "English"
