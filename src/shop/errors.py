from typing import Sequence


class ValidationError(Exception):
    """
    Raised before any network call when user input cannot be submitted
    (empty cart, missing required field). ``fields`` names the offending inputs.
    """

    def __init__(self, message: str, fields: Sequence[str] = ()):
        super().__init__(message)
        self.fields = tuple(fields)
