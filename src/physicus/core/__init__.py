"""Core modules for physicus."""

from physicus.core.client import TutorService, TutorSession
from physicus.core.config import TutorConfig
from physicus.core.controller import AppState, Phase, Screen, TutorController
from physicus.core.logging import configure_logging, LogLevel, LogComponent

__all__ = [
    'AppState',
    'Phase',
    'Screen',
    'TutorConfig',
    'TutorController',
    'TutorService',
    'TutorSession',
    'configure_logging',
    'LogLevel',
    'LogComponent'
]
