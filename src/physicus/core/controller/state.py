"""State machine for a tutoring session.

This module provides:
1. Phase / Screen: the discriminants of the application state
2. AppState: an immutable snapshot of everything the views show
3. Events: what happened (user actions and service outcomes)
4. Effects: requests for work the controller must carry out
5. transition(): the pure (state, event) -> (state, effects) function

Events raised by effects carry the epoch their effect was issued in. A reset
starts a new epoch, so late results of work started before it are dropped.
"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field

from physicus.core.errors import NO_TOPICS_FOUND, ErrorContext, ErrorKind, describe_error
from physicus.core.models import Message, RigorLevel, Sender, ValidationResult, Worksheet

MIN_MESSAGES_FOR_WORKSHEET = 2


class Phase(str, Enum):
    """Where the session is in its lifecycle."""
    UNSTARTED = "unstarted"
    LEVEL_CHOSEN = "level_chosen"
    VALIDATING = "validating"
    INITIALIZATION_FAILED = "initialization_failed"
    SESSION_ACTIVE = "session_active"
    WORKSHEET_PENDING = "worksheet_pending"
    WORKSHEET_SHOWN = "worksheet_shown"


class Screen(str, Enum):
    """Which screen is visible."""
    RIGOR_SELECTION = "rigor_selection"
    LANGUAGE_SELECTION = "language_selection"
    CHAT = "chat"


class AppState(BaseModel):
    """Immutable snapshot of the application.

    Attributes:
        level: Chosen rigor level
        language: Chosen language name
        session_open: Whether the controller holds a live chat session
        messages: The conversation, oldest first
        is_loading: A validation, initialization or chat request is in flight
        is_generating_worksheet: The worksheet pipeline is in flight
        streaming_message_id: Assistant message currently receiving fragments
        error: Chat, initialization or validation error text
        worksheet_error: Worksheet error text
        worksheet: Last generated worksheet
        show_worksheet: Whether the worksheet overlay is open
        epoch: Incremented by every reset
    """
    model_config = ConfigDict(frozen=True)

    level: Optional[RigorLevel] = None
    language: Optional[str] = None
    session_open: bool = False
    messages: Tuple[Message, ...] = ()
    is_loading: bool = False
    is_generating_worksheet: bool = False
    streaming_message_id: Optional[str] = None
    error: Optional[str] = None
    worksheet_error: Optional[str] = None
    worksheet: Optional[Worksheet] = None
    show_worksheet: bool = False
    epoch: int = 0

    @property
    def phase(self) -> Phase:
        if self.level is None:
            return Phase.UNSTARTED
        if self.language is None:
            return Phase.LEVEL_CHOSEN
        if not self.session_open:
            if self.is_loading:
                return Phase.VALIDATING
            return Phase.INITIALIZATION_FAILED
        if self.is_generating_worksheet:
            return Phase.WORKSHEET_PENDING
        if self.show_worksheet and self.worksheet is not None:
            return Phase.WORKSHEET_SHOWN
        return Phase.SESSION_ACTIVE

    @property
    def screen(self) -> Screen:
        if self.level is None:
            return Screen.RIGOR_SELECTION
        if self.language is None:
            return Screen.LANGUAGE_SELECTION
        return Screen.CHAT

    @property
    def is_streaming(self) -> bool:
        return self.streaming_message_id is not None

    @property
    def is_busy(self) -> bool:
        return self.is_loading or self.is_generating_worksheet

    @property
    def input_enabled(self) -> bool:
        return self.session_open and not self.is_busy

    @property
    def can_request_worksheet(self) -> bool:
        return self.input_enabled and len(self.messages) >= MIN_MESSAGES_FOR_WORKSHEET

    @property
    def can_retry_initialization(self) -> bool:
        return self.phase == Phase.INITIALIZATION_FAILED

    @property
    def visible_error(self) -> Optional[str]:
        if self.is_loading:
            return None
        return self.error or self.worksheet_error


class Event(BaseModel):
    """Something that happened. ``epoch`` is set on service outcomes only."""
    model_config = ConfigDict(frozen=True)

    epoch: Optional[int] = None


class LevelSelected(Event):
    level: RigorLevel


class LanguageSelected(Event):
    language: str


class CredentialsChecked(Event):
    result: ValidationResult


class SessionOpened(Event):
    pass


class InitializationFailed(Event):
    kind: ErrorKind
    detail: Optional[str] = None


class RetryInitialization(Event):
    pass


class MessageSubmitted(Event):
    message_id: str
    text: str


class ReplyStarted(Event):
    message_id: str


class FragmentReceived(Event):
    message_id: str
    text: str


class ReplyCompleted(Event):
    pass


class TurnFailed(Event):
    kind: ErrorKind
    detail: Optional[str] = None


class WorksheetRequested(Event):
    pass


class WorksheetGenerated(Event):
    worksheet: Worksheet


class NoTopicsFound(Event):
    pass


class WorksheetFailed(Event):
    kind: ErrorKind
    detail: Optional[str] = None


class WorksheetClosed(Event):
    pass


class Reset(Event):
    pass


class Effect(BaseModel):
    """Work requested by a transition, tagged with the epoch it belongs to."""
    model_config = ConfigDict(frozen=True)

    epoch: int


class ValidateCredentials(Effect):
    pass


class OpenSession(Effect):
    level: RigorLevel
    language: str


class SendTurn(Effect):
    text: str


class BuildWorksheet(Effect):
    messages: Tuple[Message, ...]
    level: RigorLevel
    language: str


class DiscardSession(Effect):
    pass


class Transition(BaseModel):
    """Result of applying an event."""
    model_config = ConfigDict(frozen=True)

    state: AppState
    effects: List[Effect] = Field(default_factory=list)


def _stay(state: AppState) -> Transition:
    return Transition(state=state)


def _update(state: AppState, **changes) -> AppState:
    return state.model_copy(update=changes)


def _on_level_selected(state: AppState, event: LevelSelected) -> Transition:
    if state.phase != Phase.UNSTARTED:
        return _stay(state)
    return Transition(state=_update(state, level=event.level))


def _on_language_selected(state: AppState, event: LanguageSelected) -> Transition:
    if state.phase != Phase.LEVEL_CHOSEN or state.is_loading:
        return _stay(state)
    return Transition(
        state=_update(state, language=event.language, is_loading=True, error=None),
        effects=[ValidateCredentials(epoch=state.epoch)],
    )


def _on_credentials_checked(state: AppState, event: CredentialsChecked) -> Transition:
    if state.phase != Phase.VALIDATING:
        return _stay(state)
    if not event.result.valid:
        kind = event.result.kind or ErrorKind.UNKNOWN
        return Transition(state=_update(
            state,
            language=None,
            is_loading=False,
            error=describe_error(ErrorContext.VALIDATION, kind, event.result.error),
        ))
    return Transition(
        state=state,
        effects=[OpenSession(epoch=state.epoch, level=state.level, language=state.language)],
    )


def _on_session_opened(state: AppState, event: SessionOpened) -> Transition:
    if state.phase != Phase.VALIDATING:
        return _stay(state)
    return Transition(state=_update(state, session_open=True, messages=(), error=None))


def _on_initialization_failed(state: AppState, event: InitializationFailed) -> Transition:
    if state.language is None or not state.is_loading:
        return _stay(state)
    return Transition(
        state=_update(
            state,
            session_open=False,
            messages=(),
            is_loading=False,
            streaming_message_id=None,
            error=describe_error(ErrorContext.INITIALIZATION, event.kind, event.detail),
        ),
        effects=[DiscardSession(epoch=state.epoch)],
    )


def _on_retry_initialization(state: AppState, event: RetryInitialization) -> Transition:
    if not state.can_retry_initialization:
        return _stay(state)
    return Transition(
        state=_update(state, is_loading=True, error=None),
        effects=[OpenSession(epoch=state.epoch, level=state.level, language=state.language)],
    )


def _on_message_submitted(state: AppState, event: MessageSubmitted) -> Transition:
    if not state.input_enabled or not event.text.strip():
        return _stay(state)
    user_message = Message(id=event.message_id, text=event.text, sender=Sender.USER)
    return Transition(
        state=_update(
            state,
            messages=state.messages + (user_message,),
            is_loading=True,
            error=None,
            worksheet_error=None,
        ),
        effects=[SendTurn(epoch=state.epoch, text=event.text)],
    )


def _on_reply_started(state: AppState, event: ReplyStarted) -> Transition:
    if not state.session_open or not state.is_loading:
        return _stay(state)
    reply = Message(id=event.message_id, sender=Sender.ASSISTANT)
    return Transition(state=_update(
        state,
        messages=state.messages + (reply,),
        streaming_message_id=event.message_id,
    ))


def _on_fragment_received(state: AppState, event: FragmentReceived) -> Transition:
    if state.streaming_message_id != event.message_id:
        return _stay(state)
    messages = tuple(
        message.with_fragment(event.text) if message.id == event.message_id else message
        for message in state.messages
    )
    return Transition(state=_update(state, messages=messages))


def _on_reply_completed(state: AppState, event: ReplyCompleted) -> Transition:
    if not state.is_loading:
        return _stay(state)
    return Transition(state=_update(state, is_loading=False, streaming_message_id=None))


def _on_turn_failed(state: AppState, event: TurnFailed) -> Transition:
    if not state.is_loading:
        return _stay(state)
    return Transition(state=_update(
        state,
        is_loading=False,
        streaming_message_id=None,
        error=describe_error(ErrorContext.CHAT, event.kind, event.detail),
    ))


def _on_worksheet_requested(state: AppState, event: WorksheetRequested) -> Transition:
    if not state.can_request_worksheet:
        return _stay(state)
    return Transition(
        state=_update(state, is_generating_worksheet=True, worksheet_error=None),
        effects=[BuildWorksheet(
            epoch=state.epoch,
            messages=state.messages,
            level=state.level,
            language=state.language,
        )],
    )


def _on_worksheet_generated(state: AppState, event: WorksheetGenerated) -> Transition:
    if not state.is_generating_worksheet:
        return _stay(state)
    return Transition(state=_update(
        state,
        is_generating_worksheet=False,
        worksheet=event.worksheet,
        show_worksheet=True,
    ))


def _on_no_topics_found(state: AppState, event: NoTopicsFound) -> Transition:
    if not state.is_generating_worksheet:
        return _stay(state)
    return Transition(state=_update(
        state,
        is_generating_worksheet=False,
        worksheet_error=NO_TOPICS_FOUND,
    ))


def _on_worksheet_failed(state: AppState, event: WorksheetFailed) -> Transition:
    if not state.is_generating_worksheet:
        return _stay(state)
    return Transition(state=_update(
        state,
        is_generating_worksheet=False,
        worksheet_error=describe_error(ErrorContext.WORKSHEET, event.kind, event.detail),
    ))


def _on_worksheet_closed(state: AppState, event: WorksheetClosed) -> Transition:
    if not state.show_worksheet:
        return _stay(state)
    return Transition(state=_update(state, show_worksheet=False))


def _on_reset(state: AppState, event: Reset) -> Transition:
    return Transition(
        state=AppState(epoch=state.epoch + 1),
        effects=[DiscardSession(epoch=state.epoch + 1)],
    )


_HANDLERS: Dict[Type[Event], Callable[[AppState, Event], Transition]] = {
    LevelSelected: _on_level_selected,
    LanguageSelected: _on_language_selected,
    CredentialsChecked: _on_credentials_checked,
    SessionOpened: _on_session_opened,
    InitializationFailed: _on_initialization_failed,
    RetryInitialization: _on_retry_initialization,
    MessageSubmitted: _on_message_submitted,
    ReplyStarted: _on_reply_started,
    FragmentReceived: _on_fragment_received,
    ReplyCompleted: _on_reply_completed,
    TurnFailed: _on_turn_failed,
    WorksheetRequested: _on_worksheet_requested,
    WorksheetGenerated: _on_worksheet_generated,
    NoTopicsFound: _on_no_topics_found,
    WorksheetFailed: _on_worksheet_failed,
    WorksheetClosed: _on_worksheet_closed,
    Reset: _on_reset,
}


def transition(state: AppState, event: Event) -> Transition:
    """Apply ``event`` to ``state``.

    Events that do not apply in the current state leave it unchanged and
    request nothing.
    """
    if event.epoch is not None and event.epoch != state.epoch:
        return _stay(state)
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise ValueError(f"Unhandled event type: {type(event).__name__}")
    return handler(state, event)
