"""Shared test fixtures.

Nothing here talks to the network: the controller runs against ``FakeService``,
sessions read from ``fake_stream`` and the views typeset with ``FakeEngine``.
"""

import pytest
from types import SimpleNamespace
from typing import AsyncIterator, Iterable, List, Optional, Sequence

from physicus.core.config import TutorConfig
from physicus.core.errors import ErrorKind, TutorServiceError
from physicus.core.models import (
    Message,
    RigorLevel,
    Sender,
    ValidationResult,
    Worksheet,
    WorksheetAnswer,
    WorksheetQuestion,
)


class FakeEngine:
    """Typesets by wrapping the expression so tests can see what was rendered."""

    def __init__(self):
        self.calls = []

    def render_to_string(self, expression: str, display_mode: bool = False, throw_on_error: bool = False) -> str:
        self.calls.append((expression, display_mode))
        if display_mode:
            return f"[{expression}]"
        return f"<{expression}>"


class BrokenEngine:
    """Engine that fails on every expression."""

    def render_to_string(self, expression: str, display_mode: bool = False, throw_on_error: bool = False) -> str:
        raise RuntimeError("typesetting failed")


async def fragments(parts: Iterable[str], error: Optional[Exception] = None) -> AsyncIterator[str]:
    for part in parts:
        yield part
    if error is not None:
        raise error


def fake_stream(parts: Iterable[str]):
    """Async stream shaped like a Mirascope stream: ``(chunk, tool)`` pairs."""
    async def stream():
        for part in parts:
            yield SimpleNamespace(content=part), None
    return stream()


class FakeService:
    """Stands in for ``TutorService`` and records every call."""

    def __init__(
        self,
        validation: Optional[ValidationResult] = None,
        replies: Optional[List[List[str]]] = None,
        topics: Optional[List[str]] = None,
        worksheet: Optional[Worksheet] = None,
    ):
        self.validation = validation or ValidationResult(valid=True)
        self.replies = list(replies or [])
        self.topics = ["Newton's laws"] if topics is None else topics
        self.worksheet = worksheet
        self.open_error: Optional[Exception] = None
        self.turn_error: Optional[Exception] = None
        self.stream_error: Optional[Exception] = None
        self.topics_error: Optional[Exception] = None
        self.worksheet_error: Optional[Exception] = None
        self.sessions = []
        self.turns = []
        self.topic_requests = []
        self.worksheet_requests = []

    async def validate_credentials(self) -> ValidationResult:
        return self.validation

    def open_tutoring_session(self, level: RigorLevel, language: str):
        if self.open_error is not None:
            raise self.open_error
        session = SimpleNamespace(level=level, language=language)
        self.sessions.append(session)
        return session

    async def send_turn(self, session, text: str) -> AsyncIterator[str]:
        self.turns.append(text)
        if self.turn_error is not None:
            raise self.turn_error
        parts = self.replies.pop(0) if self.replies else ["..."]
        return fragments(parts, self.stream_error)

    async def extract_topics(self, history: Sequence[Message], level: RigorLevel, language: str) -> List[str]:
        self.topic_requests.append(list(history))
        if self.topics_error is not None:
            raise self.topics_error
        return self.topics

    async def generate_worksheet(self, topics: Sequence[str], level: RigorLevel, language: str) -> Worksheet:
        self.worksheet_requests.append(list(topics))
        if self.worksheet_error is not None:
            raise self.worksheet_error
        return self.worksheet


@pytest.fixture
def tutor_config() -> TutorConfig:
    """Fixture providing a configuration with a dummy key."""
    return TutorConfig(api_key="test-key", history_char_budget=10000)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def sample_worksheet() -> Worksheet:
    """Fixture providing a worksheet whose answer key arrives out of order."""
    return Worksheet(
        title="Newton's Laws",
        questions=[
            WorksheetQuestion(question_number=1, question_text="State the first law."),
            WorksheetQuestion(question_number=2, question_text="Compute $F = ma$ for m=2, a=3."),
            WorksheetQuestion(question_number=3, question_text="What is inertia?"),
        ],
        answer_key=[
            WorksheetAnswer(question_number=3, answer_text="Resistance to changes in motion."),
            WorksheetAnswer(question_number=1, answer_text="An object stays at rest or in uniform motion."),
            WorksheetAnswer(question_number=2, answer_text="$6$ N"),
        ],
    )


@pytest.fixture
def fake_service(sample_worksheet: Worksheet) -> FakeService:
    """Fixture providing a service whose calls all succeed."""
    return FakeService(worksheet=sample_worksheet)


@pytest.fixture
def sample_messages() -> List[Message]:
    """Fixture providing a short conversation."""
    return [
        Message(id="1", text="Hi, I'm PAM. What shall we study?", sender=Sender.ASSISTANT),
        Message(id="2", text="Newton's second law.", sender=Sender.USER),
        Message(id="3", text="What do you think $F$ depends on?", sender=Sender.ASSISTANT),
    ]


@pytest.fixture
def rate_limit_error() -> TutorServiceError:
    return TutorServiceError(ErrorKind.RATE_LIMITED, "429 RESOURCE_EXHAUSTED")
