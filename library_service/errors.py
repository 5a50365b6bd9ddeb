class ValidationError(ValueError):
    """Form input rejected before it reaches the service."""


class NotFoundError(LookupError):
    pass


class LoanStateError(Exception):
    """The loan or book is not in a state that allows the transition."""
