"""
Error taxonomy for Syllabus Engine
Only FatalIngestFailure interrupts the learner; everything else degrades
"""

from typing import Optional


class SyllabusEngineError(Exception):
    """Base exception for application errors"""
    pass


class FatalIngestFailure(SyllabusEngineError):
    """Course structure could not be extracted; the session cannot proceed"""
    pass


class MalformedResponse(SyllabusEngineError):
    """A response arrived but did not parse, even after cleanup"""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text

    def preview(self, limit: int = 500) -> str:
        """Truncated raw text for log lines"""
        if not self.raw_text:
            return "<empty>"
        return self.raw_text[:limit]


class ServiceUnavailable(SyllabusEngineError):
    """The external call itself failed (network, timeout, provider error)"""

    def __init__(self, intent: str, message: str):
        super().__init__(f"{intent}: {message}")
        self.intent = intent


class PlaybackFailure(SyllabusEngineError):
    """Audio could not be decoded or played"""
    pass


class IncompleteExam(SyllabusEngineError):
    """Submission attempted while a question has no selected answer"""
    pass
