"""
Error taxonomy shared by the post lifecycle, media flow and webhook consumer.

Each error knows its HTTP status and how to render itself into the JSON
envelope; ``main.py`` registers the handlers that call ``to_envelope``.
"""
from typing import Any, Optional

from fastapi import status


class BlogError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_envelope(self) -> dict[str, Any]:
        return {"message": self.message}


class ValidationFailed(BlogError):
    """Field-level validation failure; ``errors`` maps field name to its first message."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"

    def __init__(self, errors: dict[str, str], message: Optional[str] = None) -> None:
        super().__init__(message)
        self.errors = errors

    def to_envelope(self) -> dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class AuthenticationRequired(BlogError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class NotFound(BlogError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not Found"


class NotFoundOrForbidden(BlogError):
    # One variant for both cases so callers cannot probe other users' posts
    status_code = status.HTTP_404_NOT_FOUND
    message = "Post not found or access denied"


class SignatureInvalid(BlogError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid signature"


class UpstreamFailure(BlogError):
    """Storage or object-store failure; the raw error is echoed for operators."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Error"

    def __init__(self, message: Optional[str] = None, err: Any = None) -> None:
        super().__init__(message)
        self.err = err

    def to_envelope(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message}
        if self.err is not None:
            body["err"] = describe_error(self.err)
        return body


class DataIntegrityError(UpstreamFailure):
    message = "Data integrity error"


class PartialUploadFailure(BlogError):
    """The object was stored but binding it to a post failed; nothing is rolled back."""

    def __init__(self, public_url: str, cause: BlogError, message: str) -> None:
        super().__init__(message)
        self.public_url = public_url
        self.cause = cause
        self.status_code = cause.status_code

    def to_envelope(self) -> dict[str, Any]:
        body = self.cause.to_envelope()
        body["message"] = self.message
        body["public_url"] = self.public_url
        return body


def describe_error(err: Any) -> Any:
    if isinstance(err, BaseException):
        return {"type": type(err).__name__, "detail": str(err)}
    return err
