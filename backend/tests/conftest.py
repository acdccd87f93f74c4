import base64
import json
from typing import Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from glowcheck.config import GlowCheckConfig
from glowcheck.models.detection import Angle
from glowcheck.services.face_detection import parse_annotation

FRONT_BYTES = b"\xff\xd8\xff\xe0front-photo"
LEFT_BYTES = b"\xff\xd8\xff\xe0left-photo"
RIGHT_BYTES = b"\xff\xd8\xff\xe0right-photo"

PRIMARY_URL = "https://llm.test/text/llm/"
OPENAI_URL = "https://openai.test/v1/chat/completions"

FRONT_LANDMARKS = [
    {"type": "LEFT_EYE", "position": {"x": 140, "y": 200, "z": 0}},
    {"type": "RIGHT_EYE", "position": {"x": 262, "y": 203, "z": 0}},
    {"type": "NOSE_TIP", "position": {"x": 198, "y": 262, "z": -20}},
    {"type": "MOUTH_LEFT", "position": {"x": 160, "y": 320, "z": 0}},
    {"type": "MOUTH_RIGHT", "position": {"x": 240, "y": 322, "z": 0}},
]

SKIN_COLORS = [
    {"color": {"red": 220, "green": 180, "blue": 150}, "score": 0.4, "pixelFraction": 0.45},
    {"color": {"red": 120, "green": 95, "blue": 80}, "score": 0.2, "pixelFraction": 0.25},
    {"color": {"red": 40, "green": 40, "blue": 45}, "score": 0.1, "pixelFraction": 0.1},
]


def face_annotation(
    *,
    confidence: float = 0.92,
    landmarks: Optional[List[dict]] = None,
    roll: float = 2.0,
    pan: float = 5.0,
    tilt: float = 3.0,
    width: int = 240,
    height: int = 260,
    exposure: str = "VERY_UNLIKELY",
    blur: str = "VERY_UNLIKELY",
) -> dict:
    return {
        "boundingPoly": {
            "vertices": [
                {"x": 80, "y": 100},
                {"x": 80 + width, "y": 100},
                {"x": 80 + width, "y": 100 + height},
                {"x": 80, "y": 100 + height},
            ]
        },
        "landmarks": FRONT_LANDMARKS if landmarks is None else landmarks,
        "rollAngle": roll,
        "panAngle": pan,
        "tiltAngle": tilt,
        "detectionConfidence": confidence,
        "underExposedLikelihood": exposure,
        "blurredLikelihood": blur,
    }


def vision_entry(face: Optional[dict] = None, colors: Optional[List[dict]] = None) -> dict:
    entry = {
        "imagePropertiesAnnotation": {
            "dominantColors": {"colors": SKIN_COLORS if colors is None else colors}
        }
    }
    if face is not None:
        entry["faceAnnotations"] = [face]
    return entry


def profile_entry(nose_x: float) -> dict:
    return vision_entry(
        face_annotation(
            confidence=0.8,
            landmarks=[{"type": "NOSE_TIP", "position": {"x": nose_x, "y": 250}}],
            pan=70.0,
            width=200,
            height=220,
        )
    )


def detection(angle: Angle = Angle.FRONT, **kwargs):
    return parse_annotation(vision_entry(face_annotation(**kwargs)), angle)


def content_key(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def assessment_json(overall: int = 88, confidence: float = 0.85) -> str:
    return json.dumps(
        {
            "skinAnalysis": {
                "skinType": "Combination",
                "skinTone": "Medium Warm",
                "skinQuality": "Very Good",
                "textureScore": 84,
                "clarityScore": 86,
                "hydrationLevel": 78,
                "poreVisibility": 30,
                "elasticity": 88,
                "pigmentationEvenness": 82,
            },
            "dermatologyAssessment": {
                "acneRisk": "Low",
                "agingSigns": ["Fine lines"],
                "skinConcerns": ["Enlarged pores"],
                "recommendedTreatments": ["Retinoid therapy"],
                "skinConditions": [],
                "preventiveMeasures": ["SPF 30+ daily"],
            },
            "beautyScores": {"overallScore": overall, "jawlineDefinition": 79},
            "professionalRecommendations": ["Use SPF daily", "Add a retinoid at night"],
            "confidence": confidence,
            "analysisAccuracy": "Standard (single-angle)",
        }
    )


class FakeServices:
    """Scripted Vision / LLM backends served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.vision: Dict[str, object] = {}
        self.default_vision: object = vision_entry(face_annotation())
        self.primary: List[tuple] = []
        self.openai: List[tuple] = []
        self.calls: List[str] = []
        self.vision_requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "vision.googleapis.com":
            self.calls.append("vision")
            self.vision_requests.append(request)
            body = json.loads(request.content)
            content = body["requests"][0]["image"]["content"]
            scripted = self.vision.get(content, self.default_vision)
            if isinstance(scripted, int):
                return httpx.Response(scripted, json={"error": {"code": scripted}})
            return httpx.Response(200, json={"responses": [scripted]})
        if host == "llm.test":
            self.calls.append("primary")
            status, body = self.primary.pop(0) if self.primary else (500, {})
            return httpx.Response(status, json=body)
        if host == "openai.test":
            self.calls.append("openai")
            status, body = self.openai.pop(0) if self.openai else (500, {})
            return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": "unexpected host"})

    def count(self, service: str) -> int:
        return self.calls.count(service)


def openai_completion(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture
def services():
    return FakeServices()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def config():
    return GlowCheckConfig(
        vision_api_key="test-vision-key",
        primary_llm_url=PRIMARY_URL,
        openai_api_key="sk-test",
        openai_url=OPENAI_URL,
        assessment_providers=["primary", "openai"],
        max_retries=2,
        retry_base_delay_s=1.0,
    )


@pytest_asyncio.fixture
async def http_client(services):
    async with httpx.AsyncClient(transport=httpx.MockTransport(services.handler)) as client:
        yield client
