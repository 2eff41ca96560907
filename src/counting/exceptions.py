from ballots.validation import BallotValidationError


class PRSTVError(ValueError):
    """Base class for errors raised by the count engine."""


class CountConfigurationError(PRSTVError):
    """The counter was set up with an unusable seat count or candidate list."""


__all__ = ["PRSTVError", "CountConfigurationError", "BallotValidationError"]
