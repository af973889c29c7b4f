"""Exceptions raised by the club back office."""


class ClubError(Exception):
    """Base class for all club errors."""
    pass


class StudentValidationError(ClubError):
    """Raised when a student form is missing required fields."""
    pass


class PaymentValidationError(ClubError):
    """Raised when a manual payment cannot be registered."""
    pass


class ExerciseValidationError(ClubError):
    """Raised when an exercise is missing its title or video."""
    pass


class WizardValidationError(ClubError):
    """Raised when the prescription wizard is submitted incomplete."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))


class WizardClosedError(ClubError):
    """Raised when a command reaches a wizard that was submitted or cancelled."""
    pass


class WizardStepError(ClubError):
    """Raised when a wizard command does not belong to the current step."""
    pass


class AssistBusyError(ClubError):
    """Raised when a generative call is requested while one is in flight."""
    pass


class FeedbackValidationError(ClubError):
    """Raised when workout feedback is out of range."""
    pass


class NotFoundError(ClubError):
    """Raised when a command names a record that does not exist."""
    pass
