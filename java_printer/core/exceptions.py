"""Custom exceptions for render operations.

User-facing messages are written in plain English so the person who uploaded
the archive knows what went wrong and how to fix it.
"""

from typing import Optional


class RenderError(Exception):
    """Base exception for all render errors."""

    error_type: str = "RenderError"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class UserError(RenderError):
    """Client-caused failure with a safe, displayable message."""

    error_type: str = "UserError"
    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code

    @staticmethod
    def zip_required() -> "UserError":
        return UserError("Zip file is required.", status_code=400)

    @staticmethod
    def multiple_zips() -> "UserError":
        return UserError("Only one zip file is allowed.", status_code=400)

    @staticmethod
    def invalid_zip() -> "UserError":
        return UserError("The uploaded file is not a valid zip archive.", status_code=400)

    @staticmethod
    def file_too_large() -> "UserError":
        return UserError("A Java file exceeds the allowed size.", status_code=413)

    @staticmethod
    def nested_archive_too_large() -> "UserError":
        return UserError("An embedded .umz file exceeds the allowed size.", status_code=413)

    @staticmethod
    def too_many_files() -> "UserError":
        return UserError("Too many Java files in the zip.", status_code=413)

    @staticmethod
    def total_too_large() -> "UserError":
        return UserError("Total Java source size exceeds the allowed limit.", status_code=413)

    @staticmethod
    def no_files_found(level: int) -> "UserError":
        return UserError(f"No .java files found at project level {level}.", status_code=422)

    @staticmethod
    def no_included_files() -> "UserError":
        return UserError("None of the selected files were found in the zip.", status_code=422)


class CapacityError(UserError):
    """Server is already running or queueing as many renders as allowed."""

    error_type: str = "ServerBusy"
    status_code: int = 429

    def __init__(self, message: str = "Server is busy. Please retry shortly.") -> None:
        super().__init__(message)


class JobNotFoundError(UserError):
    """Unknown or expired job id."""

    error_type: str = "JobNotFound"
    status_code: int = 404

    def __init__(self, job_id: str) -> None:
        super().__init__("Job not found.")
        self.job_id = job_id


class JobNotReadyError(UserError):
    """Download requested before the job finished."""

    error_type: str = "JobNotReady"
    status_code: int = 409

    def __init__(self, job_id: str) -> None:
        super().__init__("Job is not finished yet.")
        self.job_id = job_id


class InvalidTransitionError(RenderError):
    """A job was asked to move to a state that is not ahead of its current one."""

    error_type: str = "InvalidTransition"
