"""Logging configuration with pretty formatting for Physicus."""

import logging
from typing import Optional, Dict
from enum import Enum, IntEnum
from datetime import datetime
from pydantic import BaseModel, Field

# ANSI Color Codes
class Colors:
    """ANSI color codes for pretty terminal output."""
    HEADER = '\033[95m'      # Pink
    INFO = '\033[94m'        # Blue
    SUCCESS = '\033[92m'     # Green
    WARNING = '\033[93m'     # Yellow
    ERROR = '\033[91m'       # Red
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

PLAIN_FORMAT = (
    "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
)

DETAILED_FORMAT = (
    f"{Colors.DIM}%(asctime)s{Colors.RESET} │ "
    f"%(colored_level)-40s │ "
    f"%(message)s"
)

class PrettyFormatter(logging.Formatter):
    """Formatter with colors and symbols per level."""

    level_colors = {
        'DEBUG': (Colors.DIM, '🔍'),
        'VERBOSE': (Colors.DIM, '…'),
        'INFO': (Colors.INFO, 'ℹ️'),
        'TUTOR': (Colors.SUCCESS, '🎓'),
        'WARNING': (Colors.WARNING, '⚠️'),
        'ERROR': (Colors.ERROR, '❌'),
        'CRITICAL': (Colors.ERROR + Colors.BOLD, '🚨'),
    }

    def format(self, record):
        color, symbol = self.level_colors.get(record.levelname, (Colors.RESET, '•'))
        record.colored_level = f"{color}{symbol} {record.levelname}{Colors.RESET}"

        message = super().format(record)

        if record.levelno >= logging.WARNING:
            message = f"{message}\n{Colors.DIM}{'─' * 80}{Colors.RESET}"

        return message

class PrettyLogHandler(logging.StreamHandler):
    """Stream handler that stamps records with a short wall-clock time."""

    def emit(self, record):
        record.asctime = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        super().emit(record)

class LogComponent(str, Enum):
    """Components that can be logged."""
    CLIENT = "physicus.core.client"
    CONTROLLER = "physicus.core.controller"
    MATH = "physicus.core.latex"
    CONFIG = "physicus.core.config"
    UI = "physicus.ui"
    RUNTIME = "physicus.runtime"

class LogLevel(IntEnum):
    """Log levels mapped to logging module levels."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL
    TUTOR = 25  # Completed tutor replies

class VerbosityLevel(IntEnum):
    """Custom verbosity levels for more granular control."""
    DEBUG = logging.DEBUG
    VERBOSE = 15  # Prompts and request payloads
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

logging.addLevelName(LogLevel.TUTOR, "TUTOR")
logging.addLevelName(VerbosityLevel.VERBOSE, "VERBOSE")

class PhysicusLoggingConfig(BaseModel):
    """Controls what the client writes to the logs."""
    level: VerbosityLevel = Field(default=VerbosityLevel.INFO)
    show_prompts: bool = Field(default=False)
    show_replies: bool = Field(default=True)

def parse_log_level(value: Optional[str], default: LogLevel = LogLevel.INFO) -> LogLevel:
    """Resolve a level name such as ``"debug"``; unknown names give ``default``."""
    if not value:
        return default
    try:
        return LogLevel[value.strip().upper()]
    except KeyError:
        return default

def configure_logging(
    default_level: LogLevel = LogLevel.INFO,
    component_levels: Optional[Dict[LogComponent, LogLevel]] = None,
    pretty: bool = True,
    log_file: Optional[str] = None,
    console_level: Optional[LogLevel] = None,
) -> None:
    """Configure the root logger and per-component levels.

    Args:
        default_level: Level for the root logger.
        component_levels: Optional per-component overrides.
        pretty: Use the colored console formatter.
        log_file: Optional path; records are also written there without colors.
        console_level: Optional threshold for the console handler only. The
            console runtime raises this so log lines do not interleave with
            the chat.
    """
    handlers = []

    console_handler = PrettyLogHandler() if pretty else logging.StreamHandler()
    console_handler.setFormatter(
        PrettyFormatter(DETAILED_FORMAT if pretty else PLAIN_FORMAT)
    )
    if console_level is not None:
        console_handler.setLevel(console_level.value)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(default_level.value)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    if not component_levels:
        component_levels = {
            LogComponent.CLIENT: LogLevel.TUTOR,
            LogComponent.CONTROLLER: LogLevel.INFO,
        }

    for component, level in component_levels.items():
        logging.getLogger(component.value).setLevel(level.value)

def log_verbose(logger: logging.Logger, message: str) -> None:
    """Log a message at VERBOSE level."""
    if logger.isEnabledFor(VerbosityLevel.VERBOSE):
        logger.log(VerbosityLevel.VERBOSE, message)

def log_tutor(logger: logging.Logger, message: str) -> None:
    """Log a completed tutor reply."""
    logger.log(LogLevel.TUTOR, message)
