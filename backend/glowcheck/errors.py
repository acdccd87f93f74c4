"""Exception taxonomy for the glow analysis pipeline."""

from __future__ import annotations

from typing import List, Optional, Sequence


class GlowCheckError(Exception):
    """Base class for all pipeline errors."""


class FaceNotDetectedError(GlowCheckError):
    """Raised when the mandatory front photo does not pass face validation."""

    def __init__(
        self,
        message: str = "No usable face detected. Please retake your photo.",
        *,
        angle: str = "front",
        reasons: Optional[Sequence[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.angle = angle
        self.reasons: List[str] = list(reasons or [])


class ServiceError(GlowCheckError):
    """An external service call failed."""

    def __init__(
        self,
        message: str,
        *,
        service: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class TransientServiceError(ServiceError):
    """Retryable failure: timeouts, transport errors, 408/429/5xx."""


class PermanentServiceError(ServiceError):
    """Non-retryable failure: 4xx other than 408/429, unusable payloads."""


class ParseError(GlowCheckError):
    """Generative output could not be turned into a StructuredAssessment."""


class AnalysisUnavailableError(GlowCheckError):
    """Detection infrastructure is unreachable; no result can be produced."""


class ImageEncodingError(GlowCheckError):
    """An image reference could not be read or encoded."""


def is_retryable_status(status_code: int) -> bool:
    return status_code in (408, 429) or 500 <= status_code <= 599


def classify_status(
    status_code: int, *, service: str, detail: str = ""
) -> ServiceError:
    """Build the service error matching an HTTP status code."""
    message = f"{service} responded with HTTP {status_code}"
    if detail:
        message = f"{message}: {detail[:300]}"
    if is_retryable_status(status_code):
        return TransientServiceError(message, service=service, status_code=status_code)
    return PermanentServiceError(message, service=service, status_code=status_code)
