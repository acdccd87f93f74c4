"""StructuredAssessment schema shared by generative and fallback assessments.

The schema is lenient about missing sections and extra keys (generative output
varies in shape) but strict about types: scores are coerced to integers and
clamped to [0, 100], confidence to [0, 1], and list fields must contain
strings. Anything that cannot be coerced fails validation.
"""

import math
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AcneRisk(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def coerce_score(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("score must be numeric")
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"score must be numeric, got {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"score must be finite, got {value!r}")
    return int(max(0.0, min(100.0, round(number))))


def coerce_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        raise ValueError("expected a list of strings")
    items: List[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ValueError(f"list items must be strings, got {type(item).__name__}")
        text = str(item).strip()
        if text:
            items.append(text)
    return items


def coerce_text(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class _AssessmentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class SkinAnalysis(_AssessmentModel):
    skin_type: str = "Normal"
    skin_tone: str = "Medium Warm"
    skin_quality: str = "Good"
    texture_score: Optional[int] = None
    clarity_score: Optional[int] = None
    hydration_level: Optional[int] = None
    # Visibility of pores: lower is better.
    pore_visibility: Optional[int] = None
    elasticity: Optional[int] = None
    pigmentation_evenness: Optional[int] = None

    @field_validator("skin_type", "skin_tone", "skin_quality", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("text field must not be null")
        return coerce_text(value)

    @field_validator(
        "texture_score",
        "clarity_score",
        "hydration_level",
        "pore_visibility",
        "elasticity",
        "pigmentation_evenness",
        mode="before",
    )
    @classmethod
    def _score(cls, value: Any) -> Optional[int]:
        return coerce_score(value)


class DermatologyAssessment(_AssessmentModel):
    acne_risk: AcneRisk = AcneRisk.LOW
    aging_signs: List[str] = Field(default_factory=list)
    skin_concerns: List[str] = Field(default_factory=list)
    recommended_treatments: List[str] = Field(default_factory=list)
    skin_conditions: List[str] = Field(default_factory=list)
    preventive_measures: List[str] = Field(default_factory=list)

    @field_validator("acne_risk", mode="before")
    @classmethod
    def _acne_risk(cls, value: Any) -> AcneRisk:
        text = str(value or "").strip().lower()
        if text.startswith("high"):
            return AcneRisk.HIGH
        if text.startswith("med") or text.startswith("moderate"):
            return AcneRisk.MEDIUM
        return AcneRisk.LOW

    @field_validator(
        "aging_signs",
        "skin_concerns",
        "recommended_treatments",
        "skin_conditions",
        "preventive_measures",
        mode="before",
    )
    @classmethod
    def _lists(cls, value: Any) -> List[str]:
        return coerce_text_list(value)


class BeautyScores(_AssessmentModel):
    overall_score: Optional[int] = None
    facial_symmetry: Optional[int] = None
    skin_glow: Optional[int] = None
    jawline_definition: Optional[int] = None
    eye_area: Optional[int] = None
    lip_area: Optional[int] = None
    cheekbone_definition: Optional[int] = None
    skin_tightness: Optional[int] = None
    facial_harmony: Optional[int] = None

    @field_validator("*", mode="before")
    @classmethod
    def _score(cls, value: Any) -> Optional[int]:
        return coerce_score(value)


class StructuredAssessment(_AssessmentModel):
    skin_analysis: SkinAnalysis = Field(default_factory=SkinAnalysis)
    dermatology_assessment: DermatologyAssessment = Field(
        default_factory=DermatologyAssessment
    )
    beauty_scores: BeautyScores = Field(default_factory=BeautyScores)
    professional_recommendations: List[str] = Field(default_factory=list)
    personalized_advice: List[str] = Field(default_factory=list)
    confidence: float = 0.85
    analysis_accuracy: str = "Standard (single-angle)"

    @field_validator("professional_recommendations", "personalized_advice", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> List[str]:
        return coerce_text_list(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        if value is None or value == "":
            return 0.85
        if isinstance(value, bool):
            raise ValueError("confidence must be numeric")
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"confidence must be numeric, got {value!r}") from exc
        if not math.isfinite(number):
            raise ValueError("confidence must be finite")
        # Some models answer on a 0-100 scale.
        if number > 1.0:
            number = number / 100.0
        return max(0.0, min(1.0, number))

    @field_validator("analysis_accuracy", mode="before")
    @classmethod
    def _accuracy(cls, value: Any) -> Any:
        if value is None:
            return "Standard (single-angle)"
        return coerce_text(value)
