"""Client for the tutoring model."""

from physicus.core.client.prompts import GREETING_TRIGGER, format_history
from physicus.core.client.service import TutorService
from physicus.core.client.session import TutorSession

__all__ = [
    'GREETING_TRIGGER',
    'TutorService',
    'TutorSession',
    'format_history',
]
