# interview_console/errors.py
from typing import Optional


class ConsoleError(Exception):
    """Base class for errors raised by the interview console."""


class ConfigurationError(ConsoleError):
    pass


class BackendConnectionError(ConsoleError):
    """The backend could not be reached at all (DNS, refused connection, timeout, blocked origin)."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        super().__init__(
            f"Could not reach the backend at {url}: {cause}. "
            "Check the base URL, and that the backend's CORS settings allow requests from this origin."
        )


class BackendHTTPError(ConsoleError):
    def __init__(self, operation: str, status_code: int, body: str = "", reason: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        self.reason = reason
        status = f"{status_code} {reason}".strip()
        detail = f" - {body}" if body else ""
        super().__init__(f"Failed to {operation}: {status}{detail}")


class NoVersionsAvailable(ConsoleError):
    def __init__(self, audio_id: str, questionnaire_id: str, detail: str = ""):
        self.audio_id = audio_id
        self.questionnaire_id = questionnaire_id
        msg = f"No versions available for audio {audio_id} and guide {questionnaire_id}"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class GuideFormatError(ConsoleError):
    pass


class UploadValidationError(ConsoleError):
    pass
