"""Domain types shared by the client, the controller and the views.

This module provides:
1. Sender / Message: the chat transcript entries
2. RigorLevel / Language: the two session choices and their catalogs
3. Worksheet and its parts, with the camelCase wire names the model returns
4. TopicList / ValidationResult: transient service results
"""

import itertools
import time
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from physicus.core.errors import ErrorKind

_message_counter = itertools.count()


def new_message_id() -> str:
    """Opaque id derived from the creation timestamp."""
    return f"{time.time_ns()}-{next(_message_counter)}"


class Sender(str, Enum):
    """Who wrote a message."""
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One entry of the conversation.

    Messages are immutable; streaming produces a new value per fragment
    through ``with_fragment``.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_message_id)
    text: str = ""
    sender: Sender

    @property
    def is_user(self) -> bool:
        return self.sender == Sender.USER

    def with_fragment(self, fragment: str) -> "Message":
        return self.model_copy(update={"text": self.text + fragment})


class RigorLevel(str, Enum):
    """Academic tier that calibrates question difficulty."""
    MIDDLE_SCHOOL = "Middle School"
    HIGH_SCHOOL = "High School"
    UNDERGRADUATE = "Undergraduate"


class Language(BaseModel):
    """A selectable session language. ``code`` is what the model is told."""
    model_config = ConfigDict(frozen=True)

    name: str
    code: str


LANGUAGES: Tuple[Language, ...] = (
    Language(name="English", code="English"),
    Language(name="Español", code="Spanish"),
    Language(name="Français", code="French"),
    Language(name="Deutsch", code="German"),
    Language(name="中文 (简体)", code="Simplified Chinese"),
    Language(name="日本語", code="Japanese"),
    Language(name="한국어", code="Korean"),
    Language(name="Português", code="Portuguese"),
    Language(name="Русский", code="Russian"),
    Language(name="العربية", code="Arabic"),
    Language(name="हिन्दी", code="Hindi"),
    Language(name="Italiano", code="Italian"),
)


def find_language(value: str) -> Optional[Language]:
    """Look a language up by code or display name, case-insensitively."""
    wanted = value.strip().casefold()
    for language in LANGUAGES:
        if wanted in (language.code.casefold(), language.name.casefold()):
            return language
    return None


class WorksheetQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_number: int = Field(..., alias="questionNumber")
    question_text: str = Field(..., alias="questionText")


class WorksheetAnswer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_number: int = Field(..., alias="questionNumber")
    answer_text: str = Field(..., alias="answerText")


class Worksheet(BaseModel):
    """A generated practice worksheet.

    Question numbers are expected to be unique and contiguous; that is up to
    the generator and is not checked here.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str
    questions: List[WorksheetQuestion]
    answer_key: List[WorksheetAnswer] = Field(..., alias="answerKey")

    def sorted_answer_key(self) -> List[WorksheetAnswer]:
        """Answers ordered by question number, whatever order they arrived in."""
        return sorted(self.answer_key, key=lambda answer: answer.question_number)


class TopicList(BaseModel):
    """Structured response of the topic extraction call."""
    topics: List[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Outcome of the credential check."""
    valid: bool
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

