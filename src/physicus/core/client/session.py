"""Stateful tutoring conversation backed by Gemini through Mirascope.

A ``TutorSession`` owns the turn history of one conversation. The service is
stateless, so every turn sends:
    1. The system instruction (persona, language, level, LaTeX rules)
    2. The turns completed so far
    3. The new user turn

The reply is streamed. Only once the stream has been fully drained are the
user turn and the assembled reply appended to the history, so a turn that
fails midway leaves the session as it was.
"""

import logging
from typing import Any, AsyncIterator, List

from mirascope.core import BaseDynamicConfig, BaseMessageParam, google
from pydantic import BaseModel, ConfigDict, Field

from physicus.core.client.prompts import system_instruction
from physicus.core.logging import (
    LogComponent,
    PhysicusLoggingConfig,
    VerbosityLevel,
    log_tutor,
    log_verbose,
)
from physicus.core.models import RigorLevel

logger = logging.getLogger(LogComponent.CLIENT.value)


async def conversation_call(messages: List[BaseMessageParam], client: Any) -> BaseDynamicConfig:
    """Dynamic config for one streamed chat turn."""
    return {"messages": messages, "client": client}


class TutorSession(BaseModel):
    """One tutoring conversation.

    Attributes:
        level: Rigor level the tutor calibrates to
        language: Language code the whole exchange is held in
        model: Model identifier
        client: ``google.genai.Client`` the calls go through
        history: Completed turns, oldest first
        logging_config: Controls whether prompts and replies are logged
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    level: RigorLevel
    language: str
    model: str
    client: Any = Field(repr=False)
    history: List[BaseMessageParam] = Field(
        default_factory=list,
        description="Completed turns"
    )
    logging_config: PhysicusLoggingConfig = Field(default_factory=PhysicusLoggingConfig)

    @property
    def system_prompt(self) -> str:
        return system_instruction(self.level, self.language)

    def _messages(self, query: str) -> List[BaseMessageParam]:
        return [
            BaseMessageParam(role="system", content=self.system_prompt),
            *self.history,
            BaseMessageParam(role="user", content=query),
        ]

    async def _open_stream(self, query: str):
        """Issue the streaming request and return the Mirascope stream."""
        call = google.call(self.model, stream=True)(conversation_call)
        return await call(self._messages(query), self.client)

    async def send(self, query: str) -> AsyncIterator[str]:
        """Send a user turn.

        Awaiting this opens the request; the returned iterator yields the
        reply fragments in delivery order and can be consumed once.
        """
        if self.logging_config.show_prompts or \
           self.logging_config.level <= VerbosityLevel.DEBUG:
            log_verbose(logger, f"Sending turn: {query}")
        stream = await self._open_stream(query)
        return self._drain(query, stream)

    async def _drain(self, query: str, stream) -> AsyncIterator[str]:
        chunks = []
        async for chunk, _ in stream:
            if chunk.content:
                chunks.append(chunk.content)
                yield chunk.content

        reply = "".join(chunks)
        self.history.append(BaseMessageParam(role="user", content=query))
        self.history.append(BaseMessageParam(role="assistant", content=reply))

        if self.logging_config.show_replies:
            log_tutor(logger, f"Tutor reply ({len(reply)} chars): {reply}")
