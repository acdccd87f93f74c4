"""Pipeline input, validation and result models."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from glowcheck.models.assessment import AcneRisk
from glowcheck.models.detection import Angle

ImageRef = Union[bytes, str, Path]

# Inclusive clamp range of every detailed sub-metric.
DETAILED_SCORE_RANGES: Dict[str, Tuple[int, int]] = {
    "jawline_sharpness": (60, 98),
    "brightness_glow": (60, 98),
    "hydration_level": (60, 98),
    "facial_symmetry": (60, 100),
    "pore_visibility": (60, 98),
    "skin_texture": (60, 98),
    "evenness": (60, 98),
    "elasticity": (60, 98),
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RawImageSet(BaseModel):
    front: ImageRef
    left: Optional[ImageRef] = None
    right: Optional[ImageRef] = None

    @property
    def is_multi_angle(self) -> bool:
        return self.left is not None and self.right is not None

    def by_angle(self) -> Dict[Angle, ImageRef]:
        images: Dict[Angle, ImageRef] = {Angle.FRONT: self.front}
        if self.left is not None:
            images[Angle.LEFT] = self.left
        if self.right is not None:
            images[Angle.RIGHT] = self.right
        return images


class ReasonCode(str, Enum):
    NO_FACE = "NO_FACE"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    MISSING_LANDMARKS = "MISSING_LANDMARKS"
    FACE_TOO_SMALL = "FACE_TOO_SMALL"
    EXTREME_POSE = "EXTREME_POSE"
    UNDER_EXPOSED = "UNDER_EXPOSED"
    BLURRED = "BLURRED"
    IMAGE_UNREADABLE = "IMAGE_UNREADABLE"


class AngleVerdict(BaseModel):
    angle: Angle
    passed: bool
    reasons: List[ReasonCode] = Field(default_factory=list)


class ValidationVerdict(BaseModel):
    verdicts: Dict[Angle, AngleVerdict] = Field(default_factory=dict)

    @property
    def passed(self) -> bool:
        front = self.verdicts.get(Angle.FRONT)
        return front is not None and front.passed

    def passed_profiles(self) -> List[Angle]:
        return [
            angle
            for angle, verdict in self.verdicts.items()
            if angle != Angle.FRONT and verdict.passed
        ]


class AssessmentSource(str, Enum):
    GENERATIVE = "generative"
    FALLBACK = "fallback"


class AnalysisStep(str, Enum):
    DETECTION_DONE = "detection_done"
    ASSESSMENT_DONE = "assessment_done"
    SYNTHESIS_DONE = "synthesis_done"


class DetailedScores(_CamelModel):
    jawline_sharpness: int
    brightness_glow: int
    hydration_level: int
    facial_symmetry: int
    pore_visibility: int
    skin_texture: int
    evenness: int
    elasticity: int


class DermatologyInsights(_CamelModel):
    acne_risk: AcneRisk = AcneRisk.LOW
    aging_signs: List[str] = Field(default_factory=list)
    skin_concerns: List[str] = Field(default_factory=list)
    recommended_treatments: List[str] = Field(default_factory=list)


class AnalysisResult(_CamelModel):
    overall_score: int = Field(ge=0, le=100)
    rating: str
    skin_potential: str
    skin_quality: str
    skin_tone: str
    skin_type: str
    detailed_scores: DetailedScores
    dermatology_insights: DermatologyInsights
    personalized_tips: List[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    analysis_accuracy: str
    assessment_source: AssessmentSource
    is_multi_angle: bool = False
    timestamp: datetime
    image_uri: Optional[str] = None


class AnalysisHistoryItem(_CamelModel):
    """Trimmed result kept by the history collaborator."""

    overall_score: int
    rating: str
    skin_type: str
    skin_tone: str = ""
    skin_quality: str = ""
    skin_potential: str = ""
    detailed_scores: Optional[DetailedScores] = None
    dermatology_insights: Optional[DermatologyInsights] = None
    personalized_tips: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    assessment_source: Optional[AssessmentSource] = None
    timestamp: datetime
