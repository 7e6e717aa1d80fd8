"""Error taxonomy for the matching and onboarding pipeline."""

from __future__ import annotations


class FounderMatchError(Exception):
    """Base class. `status_code` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class Unauthorized(FounderMatchError):
    status_code = 401


class InvalidRequest(FounderMatchError):
    status_code = 400


class NotFound(FounderMatchError):
    status_code = 404


class ModelInvocationError(FounderMatchError):
    """Network, timeout or provider-side failure calling the model."""

    status_code = 502


class ResponseParseError(FounderMatchError):
    """The model answered, but not with JSON of the expected shape."""

    status_code = 502

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class PersistenceError(FounderMatchError):
    status_code = 503
