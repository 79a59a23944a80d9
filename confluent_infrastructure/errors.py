"""Error types raised by the REST clients and resource providers."""

from typing import Optional

import httpx


class ProviderError(Exception):
    """Invalid input or an unsupported lifecycle operation."""


class ConfluentApiError(Exception):
    """A call to the Kafka REST API or the cloud API failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.method = method
        self.url = url

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code} {httpx.codes.get_reason_phrase(self.status_code)}: {self.message}"


class ResourceNotFoundError(ConfluentApiError):
    """The remote API answered 404."""


def extract_error_detail(response: httpx.Response) -> str:
    """Pull a human-readable message out of an API error body.

    Kafka REST returns {"error_code": 40403, "message": "..."}, the cloud API
    returns {"errors": [{"status": "...", "detail": "..."}]} or
    {"error": {"code": ..., "message": "..."}}.
    """
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase

    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            details = [str(e.get("detail") or e.get("title") or e) for e in errors if isinstance(e, dict)]
            if details:
                return "; ".join(details)
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text.strip() or response.reason_phrase


def error_from_response(response: httpx.Response) -> ConfluentApiError:
    error_class = ResourceNotFoundError if response.status_code == 404 else ConfluentApiError
    return error_class(
        extract_error_detail(response),
        status_code=response.status_code,
        method=response.request.method,
        url=str(response.request.url),
    )


def is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, ResourceNotFoundError)
