"""Exceptions raised by the session service layer."""


class DailyDoseError(Exception):
    """Base class for Daily Dose service errors."""


class NoEligibleContent(DailyDoseError):
    """The learner has no published cards available for their role."""


class SessionNotFound(DailyDoseError):
    pass


class SessionAlreadyCompleted(DailyDoseError):
    pass


class InvalidCardResult(DailyDoseError):
    """A submitted card result cannot be interpreted (negative or inconsistent counts)."""
