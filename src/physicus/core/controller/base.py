"""Tutoring session controller.

The controller owns the application state and the chat session. It feeds
events through the pure ``transition`` function, publishes every new snapshot
to its subscribers and carries out the effects the transitions request.

Startup flow:
    1. select_level()       -> LevelSelected
    2. select_language()    -> LanguageSelected -> validate credentials
    3. on success           -> open the session and stream the introduction
    4. send_message()       -> stream the reply into a new assistant message
    5. request_worksheet()  -> extract topics, then generate the worksheet

Effects are awaited inside ``dispatch``, so one action (including the full
drain of a reply stream) finishes before the caller can issue the next.

Example:
    ```python
    controller = TutorController(service)
    controller.subscribe(lambda state: print(state.phase))
    await controller.select_level(RigorLevel.HIGH_SCHOOL)
    await controller.select_language("Spanish")
    await controller.send_message("What is inertia?")
    ```
"""

import logging
from typing import AsyncIterator, Callable, List, Optional

from physicus.core.client.prompts import GREETING_TRIGGER
from physicus.core.client.service import TutorService
from physicus.core.client.session import TutorSession
from physicus.core.controller.state import (
    AppState,
    BuildWorksheet,
    CredentialsChecked,
    DiscardSession,
    Effect,
    Event,
    FragmentReceived,
    InitializationFailed,
    LanguageSelected,
    LevelSelected,
    MessageSubmitted,
    NoTopicsFound,
    OpenSession,
    ReplyCompleted,
    ReplyStarted,
    Reset,
    RetryInitialization,
    SendTurn,
    SessionOpened,
    TurnFailed,
    ValidateCredentials,
    WorksheetClosed,
    WorksheetFailed,
    WorksheetGenerated,
    WorksheetRequested,
    transition,
)
from physicus.core.errors import translate_error
from physicus.core.logging import LogComponent
from physicus.core.models import RigorLevel, new_message_id

logger = logging.getLogger(LogComponent.CONTROLLER.value)

StateListener = Callable[[AppState], None]


class TutorController:
    """Owns session state and sequences calls to the tutoring service.

    Attributes:
        service: Client for the tutoring model
        state: Current snapshot
        session: Live chat session, if one is open
    """

    def __init__(self, service: TutorService, state: Optional[AppState] = None) -> None:
        self.service = service
        self.state = state or AppState()
        self.session: Optional[TutorSession] = None
        self._listeners: List[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    def _apply(self, event: Event) -> List[Effect]:
        result = transition(self.state, event)
        if result.state is not self.state:
            logger.debug(f"{type(event).__name__}: {self.state.phase.value} -> {result.state.phase.value}")
            self.state = result.state
            self._publish()
        return result.effects

    async def dispatch(self, event: Event) -> AppState:
        """Apply an event and carry out whatever it requests."""
        for effect in self._apply(event):
            await self._run(effect)
        return self.state

    async def _run(self, effect: Effect) -> None:
        if isinstance(effect, ValidateCredentials):
            await self._validate(effect)
        elif isinstance(effect, OpenSession):
            await self._open_session(effect)
        elif isinstance(effect, SendTurn):
            await self._send_turn(effect)
        elif isinstance(effect, BuildWorksheet):
            await self._build_worksheet(effect)
        elif isinstance(effect, DiscardSession):
            self.session = None
        else:
            raise ValueError(f"Unhandled effect type: {type(effect).__name__}")

    async def _validate(self, effect: ValidateCredentials) -> None:
        result = await self.service.validate_credentials()
        if not result.valid:
            logger.warning(f"Credential validation failed: {result.error}")
        await self.dispatch(CredentialsChecked(epoch=effect.epoch, result=result))

    async def _open_session(self, effect: OpenSession) -> None:
        try:
            session = self.service.open_tutoring_session(effect.level, effect.language)
            if effect.epoch != self.state.epoch:
                return
            self.session = session
            await self.dispatch(SessionOpened(epoch=effect.epoch))
            stream = await self.service.send_turn(session, GREETING_TRIGGER)
            await self._stream_reply(stream, effect.epoch)
        except Exception as e:
            logger.exception("Failed to initialize chat")
            error = translate_error(e)
            await self.dispatch(InitializationFailed(epoch=effect.epoch, kind=error.kind, detail=error.detail))

    async def _send_turn(self, effect: SendTurn) -> None:
        try:
            if self.session is None:
                raise RuntimeError("No active chat session")
            stream = await self.service.send_turn(self.session, effect.text)
            await self._stream_reply(stream, effect.epoch)
        except Exception as e:
            logger.exception("Chat turn failed")
            error = translate_error(e)
            await self.dispatch(TurnFailed(epoch=effect.epoch, kind=error.kind, detail=error.detail))

    async def _stream_reply(self, stream: AsyncIterator[str], epoch: int) -> None:
        """Fold the reply fragments into a fresh assistant message."""
        message_id = new_message_id()
        await self.dispatch(ReplyStarted(epoch=epoch, message_id=message_id))
        async for fragment in stream:
            await self.dispatch(FragmentReceived(epoch=epoch, message_id=message_id, text=fragment))
        await self.dispatch(ReplyCompleted(epoch=epoch))

    async def _build_worksheet(self, effect: BuildWorksheet) -> None:
        try:
            topics = await self.service.extract_topics(effect.messages, effect.level, effect.language)
            if not topics:
                logger.info("No topics found; skipping worksheet generation")
                await self.dispatch(NoTopicsFound(epoch=effect.epoch))
                return
            worksheet = await self.service.generate_worksheet(topics, effect.level, effect.language)
        except Exception as e:
            logger.exception("Failed to generate worksheet")
            error = translate_error(e)
            await self.dispatch(WorksheetFailed(epoch=effect.epoch, kind=error.kind, detail=error.detail))
            return
        await self.dispatch(WorksheetGenerated(epoch=effect.epoch, worksheet=worksheet))

    async def select_level(self, level: RigorLevel) -> AppState:
        return await self.dispatch(LevelSelected(level=level))

    async def select_language(self, language: str) -> AppState:
        return await self.dispatch(LanguageSelected(language=language))

    async def send_message(self, text: str) -> AppState:
        return await self.dispatch(MessageSubmitted(message_id=new_message_id(), text=text))

    async def request_worksheet(self) -> AppState:
        return await self.dispatch(WorksheetRequested())

    async def close_worksheet(self) -> AppState:
        return await self.dispatch(WorksheetClosed())

    async def retry_initialization(self) -> AppState:
        return await self.dispatch(RetryInitialization())

    async def reset(self) -> AppState:
        return await self.dispatch(Reset())
