"""Exceptions raised by recurmend."""


class RuleParseError(ValueError):
    """Recurrence rule text could not be parsed.

    Wraps the error raised by dateutil (available as ``__cause__``) together
    with the offending content line.
    """

    def __init__(self, message: str, line: str | None = None):
        super().__init__(message)
        self.line: str | None = line


class InvalidHorizonInput(ValueError):
    """Multiplier or horizon value that cannot drive occurrence expansion."""
