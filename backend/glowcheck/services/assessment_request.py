"""Compose the structured prompt sent to the generative assessment service."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from glowcheck.models.detection import Angle, FaceDetectionResult
from glowcheck.services.image_codec import EncodedImage

_RESPONSE_SCHEMA = """{
  "skinAnalysis": {
    "skinType": "Normal/Dry/Oily/Combination/Sensitive",
    "skinTone": "Very Light/Light/Medium Light/Medium/Medium Dark/Dark/Very Dark + Warm/Cool/Neutral undertone",
    "skinQuality": "Poor/Fair/Good/Very Good/Excellent",
    "textureScore": 85,
    "clarityScore": 90,
    "hydrationLevel": 80,
    "poreVisibility": 25,
    "elasticity": 88,
    "pigmentationEvenness": 82
  },
  "dermatologyAssessment": {
    "acneRisk": "Low/Medium/High",
    "agingSigns": ["Fine lines", "Loss of elasticity"],
    "skinConcerns": ["Enlarged pores", "Uneven texture"],
    "recommendedTreatments": ["Retinoid therapy", "Chemical peels"],
    "skinConditions": ["Any detected conditions like rosacea, melasma"],
    "preventiveMeasures": ["SPF 30+ daily", "Gentle cleansing"]
  },
  "beautyScores": {
    "overallScore": 88,
    "facialSymmetry": 92,
    "skinGlow": 85,
    "jawlineDefinition": 78,
    "eyeArea": 90,
    "lipArea": 85,
    "cheekboneDefinition": 87,
    "skinTightness": 83,
    "facialHarmony": 89
  },
  "professionalRecommendations": ["5-7 specific dermatologist-level recommendations"],
  "confidence": 0.9,
  "analysisAccuracy": "%(accuracy)s"
}"""


@dataclass(frozen=True)
class AssessmentPrompt:
    text: str
    context: Dict[str, Any]
    is_multi_angle: bool
    image: Optional[EncodedImage] = None

    def to_messages(self) -> List[Dict[str, Any]]:
        """Messages in the primary provider's shape (text part + image part)."""
        content: List[Dict[str, Any]] = [{"type": "text", "text": self.text}]
        if self.image is not None:
            content.append({"type": "image", "image": self.image.data_b64})
        return [{"role": "user", "content": content}]


def describe_detection(detection: FaceDetectionResult) -> Dict[str, Any]:
    """Compact, JSON-safe summary of one detection snapshot."""
    box = detection.bounding_box
    return {
        "angle": detection.angle.value,
        "faceDetected": detection.face_detected,
        "confidence": round(detection.confidence, 3),
        "landmarks": sorted(detection.landmark_types()),
        "pose": {
            "roll": round(detection.pose.roll, 1),
            "pan": round(detection.pose.pan, 1),
            "tilt": round(detection.pose.tilt, 1),
        },
        "boundingBox": (
            {"width": round(box.width), "height": round(box.height)} if box else None
        ),
        "underExposed": detection.exposure_likelihood.value,
        "blurred": detection.blur_likelihood.value,
        "dominantColors": [
            {
                "rgb": [round(c.rgb.red), round(c.rgb.green), round(c.rgb.blue)],
                "pixelFraction": round(c.pixel_fraction, 4),
            }
            for c in detection.dominant_colors[:5]
        ],
    }


def build_assessment_request(
    detections: Mapping[Angle, FaceDetectionResult],
    is_multi_angle: bool,
    *,
    front_image: Optional[EncodedImage] = None,
) -> AssessmentPrompt:
    """Pure: the same detections always produce the same prompt."""
    ordered = [detections[angle] for angle in Angle if angle in detections]
    context = {
        "analysisType": "multi-angle" if is_multi_angle else "single-angle",
        "angles": [describe_detection(item) for item in ordered],
    }
    accuracy = (
        "Professional-grade (multi-angle)" if is_multi_angle else "Standard (single-angle)"
    )
    structure_focus = (
        "(3D symmetry, profile proportions)" if is_multi_angle else "(frontal symmetry)"
    )
    text = (
        "You are a board-certified dermatologist and facial aesthetics expert. "
        f"Perform a {context['analysisType']} facial skin analysis of the attached "
        "front photo using the face-detection data below.\n\n"
        f"DETECTION DATA:\n{json.dumps(context, indent=2, sort_keys=True)}\n\n"
        "ASSESSMENT REQUIREMENTS:\n"
        "1. Skin analysis (texture, pores, pigmentation, elasticity)\n"
        "2. Dermatological assessment (acne, rosacea, melasma, aging)\n"
        f"3. Facial structure analysis {structure_focus}\n"
        "4. Beauty scoring on a 0-100 scale\n"
        "5. Practical, specific skincare recommendations\n\n"
        "poreVisibility is 0-100 where lower means less visible pores. "
        "Respond with ONLY a valid JSON object, no markdown and no extra text, "
        "with this structure:\n"
        + _RESPONSE_SCHEMA % {"accuracy": accuracy}
    )
    return AssessmentPrompt(
        text=text,
        context=context,
        is_multi_angle=is_multi_angle,
        image=front_image,
    )
