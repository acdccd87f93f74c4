from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

import glowcheck.routes.health as health_routes
from conftest import detection
from glowcheck.auth import create_access_token
from glowcheck.config import GlowCheckConfig
from glowcheck.dependencies import (
    get_analyses_collection,
    get_analysis_pipeline,
    get_config,
)
from glowcheck.errors import AnalysisUnavailableError, FaceNotDetectedError
from glowcheck.main import app
from glowcheck.models.analysis import AssessmentSource
from glowcheck.services.fallback import DeterministicFallbackGenerator
from glowcheck.services.scoring import ScoreSynthesizer

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
FILES = {"front": ("front.jpg", b"\xff\xd8\xff\xe0front", "image/jpeg")}


def _result():
    front = detection()
    assessment = DeterministicFallbackGenerator().generate("front.jpg", front)
    return ScoreSynthesizer().synthesize(
        assessment,
        source=AssessmentSource.FALLBACK,
        front=front,
        timestamp=NOW,
    )


class FakePipeline:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.images = []

    async def analyze(self, images, on_progress=None):
        self.images.append(images)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def collection():
    return MagicMock()


@pytest.fixture
def client(collection, monkeypatch):
    monkeypatch.delenv("REQUIRE_AUTH", raising=False)
    app.dependency_overrides[get_analyses_collection] = lambda: collection
    app.dependency_overrides[get_config] = lambda: GlowCheckConfig(
        vision_api_key="key", analysis_history_limit=5
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_pipeline(pipeline):
    app.dependency_overrides[get_analysis_pipeline] = lambda: pipeline


def test_analysis_success_returns_camel_case_and_saves_history(client, collection):
    pipeline = FakePipeline(result=_result())
    _use_pipeline(pipeline)

    res = client.post("/analysis", files=FILES)

    assert res.status_code == 200
    body = res.json()
    assert body["assessmentSource"] == "fallback"
    assert "overallScore" in body
    assert "detailedScores" in body
    assert pipeline.images[0].is_multi_angle is False

    doc = collection.insert_one.call_args[0][0]
    assert doc["user_id"] == "anonymous"
    assert "imageUri" not in doc and "image_uri" not in doc


def test_analysis_passes_profiles_through(client):
    pipeline = FakePipeline(result=_result())
    _use_pipeline(pipeline)
    files = dict(FILES)
    files["left"] = ("left.jpg", b"left", "image/jpeg")
    files["right"] = ("right.jpg", b"right", "image/jpeg")

    res = client.post("/analysis", files=files)

    assert res.status_code == 200
    assert pipeline.images[0].is_multi_angle is True
    assert pipeline.images[0].left == b"left"


def test_face_not_detected_is_422_with_retry_hint(client, collection):
    _use_pipeline(
        FakePipeline(error=FaceNotDetectedError(reasons=["LOW_CONFIDENCE"]))
    )

    res = client.post("/analysis", files=FILES)

    assert res.status_code == 422
    detail = res.json()["detail"]
    assert detail["reasons"] == ["LOW_CONFIDENCE"]
    assert detail["angle"] == "front"
    assert detail["can_retry"] is True
    collection.insert_one.assert_not_called()


def test_detection_outage_is_503(client):
    _use_pipeline(FakePipeline(error=AnalysisUnavailableError("down")))

    res = client.post("/analysis", files=FILES)

    assert res.status_code == 503
    assert res.json()["detail"] == "down"


def test_history_write_failure_does_not_fail_request(client, collection):
    _use_pipeline(FakePipeline(result=_result()))
    collection.insert_one.side_effect = ServerSelectionTimeoutError("no mongo")

    res = client.post("/analysis", files=FILES)

    assert res.status_code == 200


def test_history_uses_configured_limit(client, collection):
    item = _result().model_dump(mode="json")
    item.pop("image_uri", None)
    collection.find.return_value.sort.return_value.limit.return_value = [
        {**item, "timestamp": NOW}
    ]

    res = client.get("/analysis/history")

    assert res.status_code == 200
    assert len(res.json()) == 1
    assert collection.find.call_args[0][0] == {"user_id": "anonymous"}
    collection.find.return_value.sort.return_value.limit.assert_called_with(5)


def test_history_rejects_out_of_range_limit(client):
    res = client.get("/analysis/history", params={"limit": 0})
    assert res.status_code == 422


def test_require_auth_rejects_missing_token(client, monkeypatch):
    monkeypatch.setenv("REQUIRE_AUTH", "true")
    _use_pipeline(FakePipeline(result=_result()))

    res = client.post("/analysis", files=FILES)

    assert res.status_code == 401


def test_token_subject_owns_history(client, collection, monkeypatch):
    monkeypatch.setenv("REQUIRE_AUTH", "true")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    _use_pipeline(FakePipeline(result=_result()))
    token = create_access_token(sub="user-42", email="a@example.com")

    res = client.post(
        "/analysis", files=FILES, headers={"Authorization": f"Bearer {token}"}
    )

    assert res.status_code == 200
    assert collection.insert_one.call_args[0][0]["user_id"] == "user-42"


def test_invalid_token_is_401(client, monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")

    res = client.get(
        "/analysis/history", headers={"Authorization": "Bearer not-a-token"}
    )

    assert res.status_code == 401


def test_health_reports_configuration(client, monkeypatch):
    monkeypatch.setattr(
        health_routes,
        "mongo_check",
        lambda: (False, {"host": "db.test", "db": "glowcheck"}, "timeout"),
    )

    res = client.get("/health")

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "degraded"
    assert body["mongo"] == {
        "reachable": False,
        "host": "db.test",
        "db": "glowcheck",
        "error": "timeout",
    }
    assert body["vision_configured"] is True
    assert body["assessment_providers"] == {"primary": True, "openai": False}
    assert body["auth_required"] is False
