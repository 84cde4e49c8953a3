"""Exception taxonomy for the routing pipeline."""


class RouteError(Exception):
    """Base class for every error raised by the routing pipeline."""


class InvalidCoordinateError(RouteError, ValueError):
    """A ``lat,lng`` string could not be parsed or is out of range.

    ``reason`` is one of ``wrong_part_count``, ``not_a_number`` or
    ``out_of_range``.
    """

    def __init__(self, text: str, reason: str, message: str):
        super().__init__(message)
        self.text = text
        self.reason = reason


class UpstreamError(RouteError):
    """A third-party provider could not be reached. Retryable."""


class UpstreamTimeoutError(UpstreamError):
    pass


class UpstreamUnavailableError(UpstreamError):
    pass


class DirectionsError(RouteError):
    """The directions provider answered with an error."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class NotRoutableError(DirectionsError):
    """A coordinate is too far from any road for the requested profile."""


class PolylineDecodeError(ValueError):
    """An encoded polyline ended in the middle of a value."""


class NoRouteFoundError(RouteError):
    """Every routing attempt failed."""

    def __init__(self, message: str, suggestions: list[str] | None = None):
        super().__init__(message)
        self.suggestions = suggestions or []
