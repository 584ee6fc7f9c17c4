"""Error taxonomy for the fetch-and-score cycle."""

from typing import Optional


class RadarError(Exception):
    """Base class for errors surfaced by a fetch cycle."""
    pass


class AuthError(RadarError):
    """Raised when no API credential is configured."""

    def __init__(self, message: str = "API key is not configured. Set it before fetching listings."):
        super().__init__(message)


class HttpError(RadarError):
    """Raised when the upstream API rejects the call."""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"API error ({status}): {message}")


class NetworkError(RadarError):
    """Raised when no response was received at all."""

    def __init__(self, message: str = "Could not reach the server. Check your internet connection."):
        super().__init__(message)


class EmptyDatasetError(RadarError):
    """Raised when a fetch succeeded but yielded no usable records."""

    def __init__(self, message: str = "No listings were received"):
        super().__init__(message)


class CancellationError(Exception):
    """Raised when a superseded cycle reaches its publish point."""
    pass
