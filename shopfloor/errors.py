"""
Exception hierarchy for the training core.

Nothing here is fatal to the application: every session-local failure is
caught at its call site and degraded to a scored outcome or a fallback.
"""


class TrainerError(Exception):
    """Base class for all training-core errors."""
    pass


class ContentGenerationError(TrainerError):
    """Provider unreachable or returned content that could not be parsed."""
    pass


class EvaluationError(TrainerError):
    """Provider could not score a free-text answer or a transcript."""
    pass


class EmptyHistoryError(TrainerError):
    """Undo requested with no recorded turns."""
    pass


class SessionBusyError(TrainerError):
    """Input arrived while a provider call is still outstanding."""
    pass


class InvalidPhaseError(TrainerError):
    """Attempted operation not valid in the session's current phase."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} during {current} phase.")
