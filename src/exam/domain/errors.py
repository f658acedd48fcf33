class ExamError(Exception):
    """Base class for errors raised by the exam domain."""


class RepositoryError(ExamError):
    """A write against the backing store failed."""


class SessionNotFound(ExamError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Exam session not found: {session_id}")
        self.session_id = session_id


class InvalidSessionTransition(ExamError):
    def __init__(self, status: str, action: str) -> None:
        super().__init__(f"Cannot apply {action} to a session in state {status}")
        self.status = status
        self.action = action


class NoQuestionsAvailable(ExamError):
    """The requested filters matched no questions."""


class AnswerRejected(ExamError):
    """An answer that may not be recorded against the session."""

    def __init__(self, session_id: str, question_id: str, reason: str) -> None:
        super().__init__(
            f"Answer to {question_id} rejected for session {session_id}: {reason}"
        )
        self.session_id = session_id
        self.question_id = question_id


class SessionOwnershipError(AnswerRejected):
    def __init__(self, session_id: str, question_id: str, user_id: str) -> None:
        super().__init__(session_id, question_id, f"session not owned by {user_id}")
        self.user_id = user_id


class QuestionNotInSession(AnswerRejected):
    def __init__(self, session_id: str, question_id: str) -> None:
        super().__init__(session_id, question_id, "question was not served")


class QuestionAlreadyAnswered(AnswerRejected):
    def __init__(self, session_id: str, question_id: str) -> None:
        super().__init__(session_id, question_id, "already answered")
