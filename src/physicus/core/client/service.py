"""Request/response wrappers around the generative-language service.

Four operations:
    - validate_credentials: cheap check that the key and the network work
    - open_tutoring_session: configure a new ``TutorSession``
    - extract_topics: structured call listing the physics topics discussed
    - generate_worksheet: structured call producing a practice worksheet

``send_turn`` forwards a user turn to a session and returns the reply stream.

Every failure leaving this module is a ``TutorServiceError`` carrying a
classified ``ErrorKind``; ``validate_credentials`` never raises at all.

Example:
    ```python
    service = TutorService(TutorConfig.from_env())
    if (await service.validate_credentials()).valid:
        session = service.open_tutoring_session(RigorLevel.HIGH_SCHOOL, "Spanish")
        async for fragment in await service.send_turn(session, GREETING_TRIGGER):
            print(fragment, end="")
    ```
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Type, TypeVar

from google import genai
from mirascope.core import BaseDynamicConfig, BaseMessageParam, google
from pydantic import BaseModel, ValidationError

from physicus.core.client.prompts import (
    TOPICS_SCHEMA,
    WORKSHEET_SCHEMA,
    format_history,
    topics_prompt,
    worksheet_prompt,
)
from physicus.core.client.session import TutorSession
from physicus.core.config import TutorConfig
from physicus.core.errors import ErrorKind, TutorServiceError, translate_error
from physicus.core.logging import LogComponent, PhysicusLoggingConfig, log_verbose
from physicus.core.models import Message, RigorLevel, TopicList, ValidationResult, Worksheet

logger = logging.getLogger(LogComponent.CLIENT.value)

ModelT = TypeVar("ModelT", bound=BaseModel)

CHECK_PROMPT = "hello"
CHECK_CONFIG = {
    "max_output_tokens": 1,
    "thinking_config": {"thinking_budget": 0},
}
UNKNOWN_CHECK_ERROR = "An unknown error occurred during API validation."


def json_config(schema: Dict[str, Any]) -> Dict[str, Any]:
    return {"response_mime_type": "application/json", "response_schema": schema}


async def single_prompt_call(prompt: str, client: Any, config: Dict[str, Any]) -> BaseDynamicConfig:
    """Dynamic config for a one-shot, non-streaming request."""
    return {
        "messages": [BaseMessageParam(role="user", content=prompt)],
        "client": client,
        "call_params": {"config": config},
    }


class TutorService:
    """Client for the tutoring model.

    Attributes:
        config: Model name, history budget and credential
        client: ``google.genai.Client`` shared by every call and session
        logging_config: Passed on to new sessions
    """

    def __init__(
        self,
        config: TutorConfig,
        client: Optional[Any] = None,
        logging_config: Optional[PhysicusLoggingConfig] = None,
    ) -> None:
        self.config = config
        self.client = client or genai.Client(api_key=config.api_key.get_secret_value())
        self.logging_config = logging_config or PhysicusLoggingConfig()

    async def _request(self, prompt: str, call_config: Dict[str, Any]) -> Optional[str]:
        """Send one prompt and return the text of the response."""
        if self.logging_config.show_prompts:
            log_verbose(logger, f"Request to {self.config.model}:\n{prompt}")
        call = google.call(self.config.model)(single_prompt_call)
        response = await call(prompt, self.client, call_config)
        return response.content

    def _parse(self, raw: Optional[str], response_model: Type[ModelT]) -> ModelT:
        """Parse a JSON response into ``response_model``."""
        output = (raw or "").strip()
        if not output:
            logger.error("Received empty response from the tutoring service")
            raise TutorServiceError(ErrorKind.MALFORMED, "Empty response from the tutoring service")

        start = output.find("{")
        end = output.rfind("}") + 1
        if start >= 0 and end > start:
            output = output[start:end]

        try:
            return response_model.model_validate(json.loads(output))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to parse response as {response_model.__name__}: {e}")
            logger.error(f"Raw response: {raw}")
            raise translate_error(e) from e

    async def validate_credentials(self) -> ValidationResult:
        """Check that the key and the connection work. Never raises."""
        try:
            await self._request(CHECK_PROMPT, CHECK_CONFIG)
        except Exception as e:
            logger.error(f"API key validation failed: {e}")
            error = translate_error(e)
            return ValidationResult(
                valid=False,
                error=error.detail or UNKNOWN_CHECK_ERROR,
                kind=error.kind,
            )
        logger.info("API key validated")
        return ValidationResult(valid=True)

    def open_tutoring_session(self, level: RigorLevel, language: str) -> TutorSession:
        """Create a session; nothing is sent until the first turn."""
        logger.info(f"Opening tutoring session: level={level.value}, language={language}")
        return TutorSession(
            level=level,
            language=language,
            model=self.config.model,
            client=self.client,
            logging_config=self.logging_config,
        )

    async def send_turn(self, session: TutorSession, text: str) -> AsyncIterator[str]:
        """Forward a user turn; the result yields the reply fragments."""
        try:
            return await session.send(text)
        except Exception as e:
            logger.error(f"Failed to send turn: {e}")
            raise translate_error(e) from e

    async def extract_topics(
        self,
        history: Sequence[Message],
        level: RigorLevel,
        language: str,
    ) -> List[str]:
        """List the physics topics discussed in ``history``.

        Only the most recent messages that fit the configured character
        budget are sent.
        """
        formatted = format_history(history, self.config.history_char_budget)
        logger.debug(f"Extracting topics from {len(formatted)} chars of history")
        try:
            raw = await self._request(topics_prompt(formatted, level, language), json_config(TOPICS_SCHEMA))
        except Exception as e:
            logger.error(f"Topic extraction failed: {e}")
            raise translate_error(e) from e
        topics = self._parse(raw, TopicList).topics
        logger.info(f"Extracted {len(topics)} topics: {topics}")
        return topics

    async def generate_worksheet(
        self,
        topics: Sequence[str],
        level: RigorLevel,
        language: str,
    ) -> Worksheet:
        """Generate a practice worksheet covering ``topics``."""
        try:
            raw = await self._request(worksheet_prompt(topics, level, language), json_config(WORKSHEET_SCHEMA))
        except Exception as e:
            logger.error(f"Worksheet generation failed: {e}")
            raise translate_error(e) from e
        worksheet = self._parse(raw, Worksheet)
        logger.info(f"Generated worksheet '{worksheet.title}' with {len(worksheet.questions)} questions")
        return worksheet
