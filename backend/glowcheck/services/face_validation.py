"""Per-angle acceptance thresholds applied to detection results."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from glowcheck.errors import FaceNotDetectedError
from glowcheck.models.analysis import AngleVerdict, ReasonCode, ValidationVerdict
from glowcheck.models.detection import Angle, FaceDetectionResult, Likelihood

logger = logging.getLogger("glowcheck")


@dataclass(frozen=True)
class AngleRules:
    min_confidence: float
    required_landmarks: Tuple[str, ...]
    min_box_side: float
    # None disables the pose check.
    max_pose_deg: Optional[float]


FRONT_RULES = AngleRules(
    min_confidence=0.50,
    required_landmarks=("LEFT_EYE", "RIGHT_EYE", "NOSE_TIP"),
    min_box_side=100.0,
    max_pose_deg=45.0,
)
PROFILE_RULES = AngleRules(
    min_confidence=0.30,
    required_landmarks=("NOSE_TIP",),
    min_box_side=80.0,
    max_pose_deg=None,
)


class FaceValidationGate:
    def __init__(
        self,
        front_rules: AngleRules = FRONT_RULES,
        profile_rules: AngleRules = PROFILE_RULES,
    ) -> None:
        self._front_rules = front_rules
        self._profile_rules = profile_rules

    def rules_for(self, angle: Angle) -> AngleRules:
        return self._front_rules if angle == Angle.FRONT else self._profile_rules

    def check(self, detection: FaceDetectionResult) -> AngleVerdict:
        """Evaluate every rule for one angle and collect failing reason codes."""
        angle = detection.angle
        rules = self.rules_for(angle)
        if not detection.face_detected:
            return AngleVerdict(angle=angle, passed=False, reasons=[ReasonCode.NO_FACE])

        reasons = []
        if detection.confidence < rules.min_confidence:
            reasons.append(ReasonCode.LOW_CONFIDENCE)

        found = detection.landmark_types()
        if any(required not in found for required in rules.required_landmarks):
            reasons.append(ReasonCode.MISSING_LANDMARKS)

        box = detection.bounding_box
        if box is not None and (
            box.width < rules.min_box_side or box.height < rules.min_box_side
        ):
            reasons.append(ReasonCode.FACE_TOO_SMALL)

        if rules.max_pose_deg is not None and detection.pose.max_abs() > rules.max_pose_deg:
            reasons.append(ReasonCode.EXTREME_POSE)

        if detection.exposure_likelihood == Likelihood.VERY_LIKELY:
            reasons.append(ReasonCode.UNDER_EXPOSED)
        if detection.blur_likelihood == Likelihood.VERY_LIKELY:
            reasons.append(ReasonCode.BLURRED)

        return AngleVerdict(angle=angle, passed=not reasons, reasons=reasons)

    def require_front(self, detection: FaceDetectionResult) -> AngleVerdict:
        """Check the front angle and raise if it is not usable."""
        verdict = self.check(detection)
        if not verdict.passed:
            codes = [reason.value for reason in verdict.reasons]
            logger.warning("Front face validation failed: %s", codes)
            raise FaceNotDetectedError(angle=Angle.FRONT.value, reasons=codes)
        return verdict

    def evaluate(
        self,
        detections: Mapping[Angle, FaceDetectionResult],
        front_verdict: Optional[AngleVerdict] = None,
    ) -> ValidationVerdict:
        """Validate all angles; only a front failure is terminal.

        A ``front_verdict`` already obtained from ``require_front`` is reused.
        """
        front = detections.get(Angle.FRONT)
        if front is None:
            raise FaceNotDetectedError(reasons=[ReasonCode.NO_FACE.value])

        if front_verdict is None:
            front_verdict = self.require_front(front)
        verdicts = {Angle.FRONT: front_verdict}
        for angle, detection in detections.items():
            if angle == Angle.FRONT:
                continue
            verdict = self.check(detection)
            if not verdict.passed:
                logger.info(
                    "%s profile validation failed, continuing with front analysis: %s",
                    angle.value,
                    [reason.value for reason in verdict.reasons],
                )
            verdicts[angle] = verdict
        return ValidationVerdict(verdicts=verdicts)
