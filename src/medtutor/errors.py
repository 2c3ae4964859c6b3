"""Error taxonomy for MedTutor.

Every error carries the HTTP status it maps to and a short public message.
Details stay in the server log; only ``message`` is returned to the caller.
"""

from typing import Optional


class TutorError(Exception):
    """Base class for errors reported to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(TutorError):
    """A required backend credential is missing."""

    status_code = 503
    default_message = "AI is not configured. Set OPENAI_API_KEY on the server to enable this feature."


class ValidationError(TutorError):
    """The request is missing something it needs."""

    status_code = 400
    default_message = "Invalid request"


class NoKnowledgeError(TutorError):
    """The operation needs uploaded documents and the user has none."""

    status_code = 400
    default_message = "No PDF knowledge found for this user. Please upload PDFs first."


class UpstreamError(TutorError):
    """An embedding or completion call failed."""

    status_code = 500
    default_message = "The AI service failed to respond"


class CaseProgressionError(ValidationError):
    """A step decision was submitted out of order."""

    default_message = "Invalid case progression"
