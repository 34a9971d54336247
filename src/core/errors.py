"""
Exception taxonomy for the content quality pipeline.
"""
from typing import List, Tuple


class ContentQualityError(Exception):
    pass


class ConfigurationError(ContentQualityError):
    """A required setting (usually an API key) is missing or invalid."""


class AttemptError(ContentQualityError):
    """
    Failure of a single provider/model attempt. Always triggers escalation
    to the next strategy and is never surfaced directly to end callers.
    """

    def __init__(self, message: str, provider: str = "", model: str = ""):
        super().__init__(message)
        self.provider = provider
        self.model = model


class ProviderError(AttemptError):
    pass


class ProviderTimeoutError(AttemptError):
    pass


class ResponseParseError(AttemptError):
    pass


class ImprovementFailedError(ContentQualityError):
    """
    Every provider failed to improve the content.
    `failures` holds (provider, reason) pairs in the order they were tried.
    """

    def __init__(self, failures: List[Tuple[str, str]]):
        self.failures = failures
        if failures:
            detail = "; ".join(f"{provider}: {reason}" for provider, reason in failures)
        else:
            detail = "no AI provider is configured"
        super().__init__(f"Content improvement failed ({detail})")


class ContentNotFoundError(ContentQualityError):
    def __init__(self, content_id: str):
        super().__init__(f"Content not found: {content_id}")
        self.content_id = content_id
