"""
Exceptions raised by the bracket core.
"""


class BracketError(Exception):
    """Base class for bracket editing errors."""


class InvalidInputError(BracketError, ValueError):
    """Slot sequence is empty, not a power of two, or contains duplicates."""


class NoValidNamesError(BracketError):
    """An add-competitors request had nothing usable left after filtering."""

    def __init__(self, requested: int):
        self.requested = requested
        if requested == 0:
            message = 'No competitors provided to add'
        else:
            message = 'No valid competitor names provided'
        super().__init__(message)

    @property
    def nothing_requested(self) -> bool:
        return self.requested == 0


class ParticipantNotFoundError(BracketError, LookupError):
    """A move/swap referenced a name that is not in the slot sequence."""

    def __init__(self, name, message=None):
        self.name = name
        super().__init__(message or f'Competitor "{name}" is not in the bracket')


class EditNotAllowedError(BracketError):
    """Structural edit attempted while the bracket is in Active mode."""


class SubmissionError(BracketError):
    """The server did not accept a bracket submission."""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)
