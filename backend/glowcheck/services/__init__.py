"""Pipeline services for the GlowCheck analysis API."""

from glowcheck.services.retry import RetryPolicy, linear_backoff
from glowcheck.services.image_codec import EncodedImage, ImageCodec
from glowcheck.services.face_detection import FaceDetectionClient
from glowcheck.services.face_validation import FaceValidationGate
from glowcheck.services.assessment_request import (
    AssessmentPrompt,
    build_assessment_request,
)
from glowcheck.services.generative import (
    AssessmentProvider,
    GenerativeAssessmentClient,
    build_providers,
)
from glowcheck.services.sanitizer import ResponseSanitizer
from glowcheck.services.fallback import DeterministicFallbackGenerator, stable_hash
from glowcheck.services.scoring import ScoreSynthesizer
from glowcheck.services.pipeline import AnalysisPipeline
from glowcheck.services.history import list_analyses, save_analysis

__all__ = [
    "RetryPolicy",
    "linear_backoff",
    "EncodedImage",
    "ImageCodec",
    "FaceDetectionClient",
    "FaceValidationGate",
    "AssessmentPrompt",
    "build_assessment_request",
    "AssessmentProvider",
    "GenerativeAssessmentClient",
    "build_providers",
    "ResponseSanitizer",
    "DeterministicFallbackGenerator",
    "stable_hash",
    "ScoreSynthesizer",
    "AnalysisPipeline",
    "list_analyses",
    "save_analysis",
]
