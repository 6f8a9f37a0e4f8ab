"""Exceptions shared across influxwire."""


class ValidationError(ValueError):
    """Raised when an object is constructed from invalid input.

    Construction-time only. Operational problems (HTTP errors, timeouts)
    are reported through write results, never by raising this.
    """
