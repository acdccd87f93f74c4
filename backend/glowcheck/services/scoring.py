"""Combine detection-derived metrics with an assessment into the final result.

All helpers are pure functions of their inputs. Scores use half-up rounding so
that a given detection snapshot always lands on the same integer.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from glowcheck.models.analysis import (
    DETAILED_SCORE_RANGES,
    AnalysisResult,
    AssessmentSource,
    DermatologyInsights,
    DetailedScores,
)
from glowcheck.models.assessment import StructuredAssessment
from glowcheck.models.detection import (
    Angle,
    DominantColor,
    FaceDetectionResult,
    Landmark,
)

logger = logging.getLogger("glowcheck")

DEFAULT_SYMMETRY = 82
DEFAULT_BRIGHTNESS = 82
DEFAULT_PROFILE_CONSISTENCY = 85
DEFAULT_BEAUTY_SCORE = 85
DEFAULT_TEXTURE = 80
MULTI_ANGLE_BONUS = 5
MULTI_ANGLE_CONFIDENCE_BOOST = 0.10
MAX_CONFIDENCE = 0.98
IDEAL_SATURATION = 0.3

RATING_BANDS: Tuple[Tuple[int, str], ...] = (
    (90, "Outstanding"),
    (85, "Amazing"),
    (80, "Excellent"),
    (75, "Very Good"),
    (70, "Good"),
)
LOWEST_RATING = "Keep Glowing"

DEFAULT_TIPS = (
    "Use a vitamin C serum in the morning to enhance your natural glow",
    "Consider facial massage to improve jawline definition",
    "Maintain your hydration routine for continued skin health",
    "Apply broad-spectrum SPF 30+ daily for optimal skin protection",
    "Consider professional treatments based on your skin analysis",
)

# (left, right, centre) landmark triples compared by horizontal distance.
_SYMMETRY_PAIRS = (
    ("LEFT_EYE", "RIGHT_EYE", "NOSE_TIP"),
    ("MOUTH_LEFT", "MOUTH_RIGHT", "NOSE_TIP"),
    ("LEFT_EAR_TRAGION", "RIGHT_EAR_TRAGION", "NOSE_TIP"),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _distance_ratio(d1: float, d2: float) -> Optional[float]:
    longer = max(d1, d2)
    if longer <= 0:
        return None
    return min(d1, d2) / longer * 100.0


def facial_symmetry(landmarks: Sequence[Landmark]) -> int:
    """Landmark-pair symmetry in [65, 98]; 82 when no pair is measurable."""
    found = {item.type: item for item in landmarks}
    scores: List[float] = []

    for left_type, right_type, centre_type in _SYMMETRY_PAIRS:
        left, right, centre = found.get(left_type), found.get(right_type), found.get(centre_type)
        if left is None or right is None or centre is None:
            continue
        ratio = _distance_ratio(abs(left.x - centre.x), abs(right.x - centre.x))
        if ratio is not None:
            scores.append(ratio)

    left_eye, right_eye = found.get("LEFT_EYE"), found.get("RIGHT_EYE")
    if left_eye is not None and right_eye is not None:
        eye_distance = abs(left_eye.x - right_eye.x)
        if eye_distance > 0:
            level_difference = abs(left_eye.y - right_eye.y)
            scores.append(max(0.0, 100.0 - (level_difference / eye_distance) * 200.0))

    if not scores:
        return DEFAULT_SYMMETRY
    if len(scores) == 1:
        weighted = scores[0]
    else:
        rest_weight = 0.5 / (len(scores) - 1)
        weighted = scores[0] * 0.5 + sum(score * rest_weight for score in scores[1:])
    return int(clamp(round_half_up(weighted), 65, 98))


def profile_consistency(
    left: Optional[FaceDetectionResult], right: Optional[FaceDetectionResult]
) -> int:
    """Ratio of the two profile nose-tip positions, 85 when not measurable."""
    left_nose = left.landmark("NOSE_TIP") if left is not None else None
    right_nose = right.landmark("NOSE_TIP") if right is not None else None
    if left_nose is None or right_nose is None:
        return DEFAULT_PROFILE_CONSISTENCY
    ratio = _distance_ratio(abs(left_nose.x), abs(right_nose.x))
    if ratio is None:
        return DEFAULT_PROFILE_CONSISTENCY
    return round_half_up(ratio)


def multi_angle_symmetry(
    front: FaceDetectionResult,
    left: Optional[FaceDetectionResult],
    right: Optional[FaceDetectionResult],
) -> int:
    """Blend front symmetry (70%) with profile consistency (30%) plus the bonus.

    Never lower than the front-only symmetry.
    """
    front_symmetry = facial_symmetry(front.landmarks)
    combined = round_half_up(
        front_symmetry * 0.7 + profile_consistency(left, right) * 0.3
    )
    blended = min(100, combined + MULTI_ANGLE_BONUS)
    logger.debug(
        "3D symmetry: front=%s combined=%s result=%s", front_symmetry, combined, blended
    )
    return max(front_symmetry, blended)


def _is_skin_tone(red: float, green: float, blue: float) -> bool:
    return (red > green > blue and red > 100 and green > 80 and blue > 60) or (
        red > 150 and green > 120 and blue > 90
    )


def brightness_score(colors: Iterable[DominantColor]) -> int:
    """Glow score from dominant colours in [65, 98]; 82 without colour data."""
    colors = list(colors)
    if not colors:
        return DEFAULT_BRIGHTNESS

    total_brightness = 0.0
    total_saturation = 0.0
    total_fraction = 0.0
    skin_fraction = 0.0
    for color in colors:
        red, green, blue = color.rgb.red, color.rgb.green, color.rgb.blue
        fraction = color.pixel_fraction
        luminance = (red * 0.299 + green * 0.587 + blue * 0.114) / 255.0
        high = max(red, green, blue) / 255.0
        low = min(red, green, blue) / 255.0
        saturation = 0.0 if high == 0 else (high - low) / high
        if _is_skin_tone(red, green, blue):
            skin_fraction += fraction
        total_brightness += luminance * fraction
        total_saturation += saturation * fraction
        total_fraction += fraction

    avg_brightness = total_brightness / total_fraction if total_fraction > 0 else 0.5
    avg_saturation = total_saturation / total_fraction if total_fraction > 0 else 0.3

    glow = avg_brightness * 70.0
    glow += max(0.0, 15.0 - abs(avg_saturation - IDEAL_SATURATION) * 50.0)
    glow += min(15.0, skin_fraction * 30.0)
    return int(clamp(round_half_up(glow), 65, 98))


def overall_score(
    beauty_score: float,
    symmetry: float,
    brightness: float,
    texture: float,
    is_multi_angle: bool,
) -> int:
    bonus = MULTI_ANGLE_BONUS if is_multi_angle else 0
    raw = (
        beauty_score * 0.5
        + symmetry * 0.25
        + brightness * 0.15
        + texture * 0.10
        + bonus
    )
    return int(clamp(round_half_up(raw), 0, 100))


def rating_for(score: int) -> str:
    for minimum, label in RATING_BANDS:
        if score >= minimum:
            return label
    return LOWEST_RATING


def skin_potential_for(skin_quality: str) -> str:
    if skin_quality == "Excellent":
        return "Very High"
    if skin_quality == "Very Good":
        return "High"
    return "Medium"


def _bounded(name: str, value: float) -> int:
    low, high = DETAILED_SCORE_RANGES[name]
    return int(clamp(round_half_up(value), low, high))


def _first_present(*values: Optional[int]) -> Optional[int]:
    for value in values:
        if value is not None:
            return value
    return None


class ScoreSynthesizer:
    def detailed_scores(
        self, assessment: StructuredAssessment, symmetry: int, brightness: int
    ) -> DetailedScores:
        skin = assessment.skin_analysis
        beauty = assessment.beauty_scores
        aging_penalty = 100 - 10 * len(assessment.dermatology_assessment.aging_signs)
        pore_visibility = skin.pore_visibility if skin.pore_visibility is not None else 25
        values = {
            "jawline_sharpness": _first_present(beauty.jawline_definition, 80),
            "brightness_glow": brightness,
            "hydration_level": _first_present(skin.hydration_level, 85),
            "facial_symmetry": symmetry,
            "pore_visibility": 100 - pore_visibility,
            "skin_texture": _first_present(skin.texture_score, 85),
            "evenness": _first_present(
                skin.pigmentation_evenness, skin.clarity_score, 80
            ),
            "elasticity": _first_present(skin.elasticity, aging_penalty),
        }
        return DetailedScores(**{name: _bounded(name, value) for name, value in values.items()})

    @staticmethod
    def insights(assessment: StructuredAssessment) -> DermatologyInsights:
        derm = assessment.dermatology_assessment
        return DermatologyInsights(
            acne_risk=derm.acne_risk,
            aging_signs=list(derm.aging_signs),
            skin_concerns=list(derm.skin_concerns) + list(derm.skin_conditions),
            recommended_treatments=list(derm.recommended_treatments)
            + list(derm.preventive_measures),
        )

    @staticmethod
    def tips(assessment: StructuredAssessment) -> List[str]:
        if assessment.professional_recommendations:
            return list(assessment.professional_recommendations)
        if assessment.personalized_advice:
            return list(assessment.personalized_advice)
        return list(DEFAULT_TIPS)

    def synthesize(
        self,
        assessment: StructuredAssessment,
        *,
        source: AssessmentSource,
        front: FaceDetectionResult,
        profiles: Optional[Mapping[Angle, FaceDetectionResult]] = None,
        is_multi_angle: bool = False,
        timestamp: datetime,
        image_uri: Optional[str] = None,
    ) -> AnalysisResult:
        """Build the bounded AnalysisResult for one run.

        ``profiles`` holds only profile detections that passed validation;
        profile consistency falls back to its default when either is missing.
        """
        profiles = profiles or {}
        if is_multi_angle:
            symmetry = multi_angle_symmetry(
                front, profiles.get(Angle.LEFT), profiles.get(Angle.RIGHT)
            )
        else:
            symmetry = facial_symmetry(front.landmarks)
        brightness = brightness_score(front.dominant_colors)

        beauty = assessment.beauty_scores.overall_score
        texture = assessment.skin_analysis.texture_score
        score = overall_score(
            beauty if beauty is not None else DEFAULT_BEAUTY_SCORE,
            symmetry,
            brightness,
            texture if texture is not None else DEFAULT_TEXTURE,
            is_multi_angle,
        )

        confidence = assessment.confidence
        if is_multi_angle:
            confidence += MULTI_ANGLE_CONFIDENCE_BOOST
        confidence = clamp(min(MAX_CONFIDENCE, confidence), 0.0, 1.0)

        skin = assessment.skin_analysis
        result = AnalysisResult(
            overall_score=score,
            rating=rating_for(score),
            skin_potential=skin_potential_for(skin.skin_quality),
            skin_quality=skin.skin_quality,
            skin_tone=skin.skin_tone,
            skin_type=skin.skin_type,
            detailed_scores=self.detailed_scores(assessment, symmetry, brightness),
            dermatology_insights=self.insights(assessment),
            personalized_tips=self.tips(assessment),
            confidence=round(confidence, 4),
            analysis_accuracy=assessment.analysis_accuracy,
            assessment_source=source,
            is_multi_angle=is_multi_angle,
            timestamp=timestamp,
            image_uri=image_uri,
        )
        logger.info(
            "Synthesized score %s (%s) symmetry=%s brightness=%s source=%s",
            score,
            result.rating,
            symmetry,
            brightness,
            source.value,
        )
        return result
