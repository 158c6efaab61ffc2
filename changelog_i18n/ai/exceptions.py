"""
AI Service Exceptions

Exception classes for the LLM transport and response handling.
Separated to avoid circular imports between service.py and providers.py.
"""


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"message": str(self), "code": self.code, "details": self.details}


class EmptyResponseError(TranslationError):
    """The provider answered without any content."""

    def __init__(self, provider: str):
        super().__init__(f"{provider} returned an empty response", code="empty_response",
                         details={"provider": provider})


class MalformedResponseError(TranslationError):
    """The provider's content could not be parsed as the expected JSON shape."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message, code="malformed_response", details={"raw_text": raw_text[:500]})
