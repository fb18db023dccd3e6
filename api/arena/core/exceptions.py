"""Domain exceptions.

Raised by the services layer; route handlers translate them into HTTP errors.
"""


class ValidationError(ValueError):
    """Malformed input rejected before any computation runs.

    Covers bad date/time strings, unknown IANA timezones and
    non-monotonic start/end pairs.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)
