"""Physicus - Socratic physics tutoring on top of Gemini."""

from physicus.core import (
    TutorConfig,
    TutorController,
    TutorService,
    configure_logging,
    LogLevel,
    LogComponent,
)

__all__ = [
    'TutorConfig',
    'TutorController',
    'TutorService',
    'configure_logging',
    'LogLevel',
    'LogComponent'
]
