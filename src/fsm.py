import logging
from enum import Enum, auto

from src.exam.domain.errors import InvalidSessionTransition
from src.exam.domain.models import SessionStatus

logger = logging.getLogger(__name__)


class SessionAction(Enum):
    ANSWER = auto()  # Record an answer, stays in progress
    FINISH = auto()  # Score and close
    INTERRUPT = auto()  # User walked away


class SessionStateMachine:
    """
    Pure FSM Logic for exam session status.
    Completed and interrupted sessions are terminal.
    """

    def __init__(self, initial_state: SessionStatus = SessionStatus.IN_PROGRESS):
        self._state = initial_state

    @property
    def current_state(self) -> SessionStatus:
        return self._state

    def transition(self, action: SessionAction) -> SessionStatus:
        previous = self._state

        match (self._state, action):
            case (SessionStatus.IN_PROGRESS, SessionAction.ANSWER):
                pass
            case (SessionStatus.IN_PROGRESS, SessionAction.FINISH):
                self._state = SessionStatus.COMPLETED
            case (SessionStatus.IN_PROGRESS, SessionAction.INTERRUPT):
                self._state = SessionStatus.INTERRUPTED
            case _:
                logger.error(f"INVALID TRANSITION: {self._state.value} + {action.name}")
                raise InvalidSessionTransition(self._state.value, action.name)

        logger.info(f"FSM: {previous.value} --[{action.name}]--> {self._state.value}")
        return self._state
