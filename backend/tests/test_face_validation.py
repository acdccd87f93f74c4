import pytest

from conftest import detection, face_annotation, profile_entry, vision_entry
from glowcheck.errors import FaceNotDetectedError
from glowcheck.models.analysis import ReasonCode
from glowcheck.models.detection import Angle
from glowcheck.services.face_detection import parse_annotation
from glowcheck.services.face_validation import FaceValidationGate

gate = FaceValidationGate()


def test_front_with_low_confidence_is_rejected():
    with pytest.raises(FaceNotDetectedError) as excinfo:
        gate.require_front(detection(confidence=0.2))

    assert excinfo.value.angle == "front"
    assert ReasonCode.LOW_CONFIDENCE.value in excinfo.value.reasons


def test_front_with_good_detection_passes():
    verdict = gate.require_front(detection(confidence=0.9, pan=10.0, roll=10.0, tilt=10.0))

    assert verdict.passed
    assert verdict.reasons == []


def test_missing_face_is_no_face():
    verdict = gate.check(parse_annotation(vision_entry(), Angle.FRONT))

    assert verdict.reasons == [ReasonCode.NO_FACE]


@pytest.mark.parametrize(
    "kwargs, reason",
    [
        ({"landmarks": [{"type": "LEFT_EYE", "position": {"x": 1, "y": 1}}]}, ReasonCode.MISSING_LANDMARKS),
        ({"width": 90, "height": 90}, ReasonCode.FACE_TOO_SMALL),
        ({"pan": 50.0}, ReasonCode.EXTREME_POSE),
        ({"exposure": "VERY_LIKELY"}, ReasonCode.UNDER_EXPOSED),
        ({"blur": "VERY_LIKELY"}, ReasonCode.BLURRED),
    ],
)
def test_front_rule_failures(kwargs, reason):
    verdict = gate.check(detection(**kwargs))

    assert not verdict.passed
    assert reason in verdict.reasons


def test_profile_rules_are_looser():
    profile = parse_annotation(profile_entry(150.0), Angle.LEFT)
    verdict = gate.check(profile)

    # Large pan and nose-only landmarks are fine for a profile.
    assert verdict.passed


def test_failed_profile_is_advisory():
    front = detection()
    left = parse_annotation(profile_entry(150.0), Angle.LEFT)
    right = detection(Angle.RIGHT, confidence=0.1)

    verdict = gate.evaluate({Angle.FRONT: front, Angle.LEFT: left, Angle.RIGHT: right})

    assert verdict.passed
    assert verdict.passed_profiles() == [Angle.LEFT]
    assert ReasonCode.LOW_CONFIDENCE in verdict.verdicts[Angle.RIGHT].reasons


def test_evaluate_rejects_failed_front_even_with_good_profiles():
    front = detection(confidence=0.3)
    left = parse_annotation(profile_entry(150.0), Angle.LEFT)

    with pytest.raises(FaceNotDetectedError):
        gate.evaluate({Angle.FRONT: front, Angle.LEFT: left})


def test_face_annotation_helper_defaults_pass():
    assert gate.check(parse_annotation(vision_entry(face_annotation()), Angle.FRONT)).passed


def test_evaluate_reuses_front_verdict():
    front = detection()
    left = parse_annotation(profile_entry(150.0), Angle.LEFT)
    front_verdict = gate.require_front(front)

    class CountingGate(FaceValidationGate):
        checked = []

        def check(self, detection):
            self.checked.append(detection.angle)
            return super().check(detection)

    counting = CountingGate()
    verdict = counting.evaluate(
        {Angle.FRONT: front, Angle.LEFT: left}, front_verdict=front_verdict
    )

    assert verdict.verdicts[Angle.FRONT] is front_verdict
    assert counting.checked == [Angle.LEFT]
