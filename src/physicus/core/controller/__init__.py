"""Session state machine and the controller that drives it."""

from physicus.core.controller.base import TutorController
from physicus.core.controller.state import AppState, Phase, Screen, transition

__all__ = [
    'AppState',
    'Phase',
    'Screen',
    'TutorController',
    'transition',
]
