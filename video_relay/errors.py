from typing import Any, Optional


class RelayError(Exception):
    """Base error; rendered to clients as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InvalidRequestError(RelayError):
    status_code = 400


class ConfigurationError(RelayError):
    """A vendor credential or base URL is missing on the server."""

    status_code = 500


class UnknownJobError(RelayError):
    status_code = 404

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__("Unknown job")


class ProviderError(RelayError):
    """An upstream vendor call failed; carries the vendor's status code."""

    status_code = 502


class DownloadError(RelayError):
    status_code = 500


def extract_error_message(payload: Any, default: str) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
        if isinstance(payload.get("message"), str) and payload["message"]:
            return payload["message"]
        if isinstance(error, str) and error:
            return error
    return default
