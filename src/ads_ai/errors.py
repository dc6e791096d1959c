from __future__ import annotations

from typing import Any


class AdsAIError(Exception):
    """
    Base for every failure the API reports to a caller.

    `message` is the short user-facing text; `detail` carries optional
    diagnostics (upstream body, traceback, offending text).
    """

    status_code = 500

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.detail}


class FetchError(AdsAIError):
    status_code = 400


class RenderError(AdsAIError):
    status_code = 400


class ParseError(AdsAIError):
    status_code = 502


class GenerationError(AdsAIError):
    status_code = 502

    # backend_error: at least one call raised and nothing came back.
    # empty_response: every call succeeded but carried no image.
    BACKEND_ERROR = "backend_error"
    EMPTY_RESPONSE = "empty_response"

    def __init__(self, message: str, detail: Any = None, reason: str = BACKEND_ERROR) -> None:
        super().__init__(message, detail)
        self.reason = reason

    def to_payload(self) -> dict[str, Any]:
        return super().to_payload() | {"reason": self.reason}


class ConfigurationError(AdsAIError):
    status_code = 500


class PersistenceError(AdsAIError):
    status_code = 500


class NotFoundError(AdsAIError):
    status_code = 404


class InvalidRequestError(AdsAIError):
    status_code = 400
