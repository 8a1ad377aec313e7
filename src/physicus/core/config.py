"""Runtime configuration for Physicus.

Configuration comes from the environment (optionally a ``.env`` file):

    API_KEY / GEMINI_API_KEY   Google AI Studio key (required)
    PHYSICUS_MODEL             model identifier, default ``gemini-2.5-flash``
    PHYSICUS_HISTORY_CHARS     character budget for topic extraction
    PHYSICUS_LOG_LEVEL         root log level name, default ``INFO``
    PHYSICUS_LOG_FILE          optional log file path
    PHYSICUS_PRINT_COMMAND     command used to print worksheets, default ``lpr``
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator

from physicus.core.errors import MissingCredentialError
from physicus.core.logging import LogComponent, LogLevel, parse_log_level

logger = logging.getLogger(LogComponent.CONFIG.value)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_HISTORY_CHARS = 10000
API_KEY_VARIABLES = ("API_KEY", "GEMINI_API_KEY")


class TutorConfig(BaseModel):
    """Settings shared by the client and the console runtime.

    Attributes:
        api_key: Credential for the AI service
        model: Model identifier used for every call
        history_char_budget: Upper bound on transcript characters sent to topic extraction
        log_level: Root log level
        log_file: Optional file that receives the log records
        print_command: Command that receives the worksheet file on POSIX hosts
    """
    model_config = {"validate_assignment": True}

    api_key: SecretStr
    model: str = DEFAULT_MODEL
    history_char_budget: int = Field(default=DEFAULT_HISTORY_CHARS, gt=0)
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[str] = None
    print_command: str = "lpr"

    @field_validator("api_key")
    @classmethod
    def _key_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("api_key must not be blank")
        return value

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "TutorConfig":
        """Read configuration from the environment.

        Raises:
            MissingCredentialError: If no API key variable is set.
        """
        if dotenv:
            load_dotenv()

        api_key = next(
            (os.getenv(name) for name in API_KEY_VARIABLES if (os.getenv(name) or "").strip()),
            None,
        )
        if not api_key:
            raise MissingCredentialError(
                f"{API_KEY_VARIABLES[0]} environment variable not set."
            )

        budget = DEFAULT_HISTORY_CHARS
        raw_budget = os.getenv("PHYSICUS_HISTORY_CHARS")
        if raw_budget:
            try:
                budget = int(raw_budget)
            except ValueError:
                logger.warning(f"Ignoring invalid PHYSICUS_HISTORY_CHARS: {raw_budget!r}")
            if budget <= 0:
                logger.warning(f"Ignoring non-positive PHYSICUS_HISTORY_CHARS: {raw_budget!r}")
                budget = DEFAULT_HISTORY_CHARS

        return cls(
            api_key=api_key.strip(),
            model=os.getenv("PHYSICUS_MODEL") or DEFAULT_MODEL,
            history_char_budget=budget,
            log_level=parse_log_level(os.getenv("PHYSICUS_LOG_LEVEL")),
            log_file=os.getenv("PHYSICUS_LOG_FILE") or None,
            print_command=os.getenv("PHYSICUS_PRINT_COMMAND") or "lpr",
        )
