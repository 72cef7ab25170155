"""Typed failures raised by the core and translated to HTTP at the app boundary."""

from __future__ import annotations


class FormcraftError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])


class ValidationFailed(FormcraftError):
    status_code = 400


class Unauthorized(FormcraftError):
    status_code = 401


class Forbidden(FormcraftError):
    status_code = 403


class SubmissionClosed(FormcraftError):
    status_code = 403


class NotFound(FormcraftError):
    status_code = 404


class Conflict(FormcraftError):
    status_code = 409


class DuplicateSubmission(Conflict):
    pass


class UpstreamError(FormcraftError):
    """A collaborator (AI provider, file storage) failed; no user input was at fault."""

    status_code = 502

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, errors)
        if status_code is not None:
            self.status_code = status_code
