"""Pydantic models for the GlowCheck analysis API."""

from glowcheck.models.detection import (
    Angle,
    Likelihood,
    Landmark,
    PoseAngles,
    BoundingBox,
    RGB,
    DominantColor,
    FaceDetectionResult,
)
from glowcheck.models.assessment import (
    AcneRisk,
    SkinAnalysis,
    DermatologyAssessment,
    BeautyScores,
    StructuredAssessment,
)
from glowcheck.models.analysis import (
    DETAILED_SCORE_RANGES,
    ImageRef,
    RawImageSet,
    ReasonCode,
    AngleVerdict,
    ValidationVerdict,
    AssessmentSource,
    AnalysisStep,
    DetailedScores,
    DermatologyInsights,
    AnalysisResult,
    AnalysisHistoryItem,
)
from glowcheck.models.outcome import Outcome
from glowcheck.models.health import HealthStatus, MongoStatus

__all__ = [
    # Detection
    "Angle",
    "Likelihood",
    "Landmark",
    "PoseAngles",
    "BoundingBox",
    "RGB",
    "DominantColor",
    "FaceDetectionResult",
    # Assessment
    "AcneRisk",
    "SkinAnalysis",
    "DermatologyAssessment",
    "BeautyScores",
    "StructuredAssessment",
    # Analysis
    "DETAILED_SCORE_RANGES",
    "ImageRef",
    "RawImageSet",
    "ReasonCode",
    "AngleVerdict",
    "ValidationVerdict",
    "AssessmentSource",
    "AnalysisStep",
    "DetailedScores",
    "DermatologyInsights",
    "AnalysisResult",
    "AnalysisHistoryItem",
    # Stages
    "Outcome",
    # Health
    "HealthStatus",
    "MongoStatus",
]
