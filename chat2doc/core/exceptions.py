"""Error taxonomy for the conversion pipeline."""


class Chat2DocError(Exception):
    """Base class for every error raised by chat2doc.

    ``kind`` is the taxonomy name recorded on failed jobs.
    """

    kind: str = "Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.kind
        super().__init__(self.message)


class UnsupportedFormat(Chat2DocError):
    """The container kind of an upload cannot be determined."""

    kind = "UnsupportedFormat"


class FetchError(Chat2DocError):
    """A remote share link could not be retrieved."""

    kind = "FetchError"

    def __init__(self, url: str, reason: str | None = None):
        self.url = url
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Could not fetch {url}{detail}")


class ExtractionError(Chat2DocError):
    """No usable messages could be recovered from the input."""

    kind = "ExtractionError"

    def __init__(self, message: str | None = None):
        super().__init__(
            f"Extraction failed: {message}" if message else "Extraction failed"
        )


class RenderError(Chat2DocError):
    """The PDF or DOCX artifact could not be generated."""

    kind = "RenderError"

    def __init__(self, message: str | None = None):
        super().__init__(f"Render failed: {message}" if message else "Render failed")


class InvalidTransition(Chat2DocError):
    """A job status change that the state machine does not allow."""

    kind = "InvalidTransition"

    def __init__(self, job_id: str, current: str, requested: str):
        self.job_id = job_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Job {job_id}: cannot move from {current!r} to {requested!r}"
        )


class JobNotFound(Chat2DocError):
    kind = "JobNotFound"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"No conversion job with id {job_id!r}")


class QuotaExceeded(Chat2DocError):
    """The user already has as many jobs in flight as their tier allows."""

    kind = "QuotaExceeded"

    def __init__(self, user_id: str, limit: int):
        self.user_id = user_id
        self.limit = limit
        super().__init__(
            f"User {user_id} already has {limit} conversion(s) in progress"
        )


CANCELLED = "Cancelled"
"""Error kind recorded when a submission is cancelled by the caller."""

UNEXPECTED = "InternalError"
"""Error kind recorded for failures outside the taxonomy."""
