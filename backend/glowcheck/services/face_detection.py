"""Client for the external face-detection service (Google Cloud Vision)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from glowcheck.errors import (
    PermanentServiceError,
    TransientServiceError,
    classify_status,
)
from glowcheck.models.detection import (
    RGB,
    Angle,
    BoundingBox,
    DominantColor,
    FaceDetectionResult,
    Landmark,
    Likelihood,
    PoseAngles,
)
from glowcheck.services.image_codec import EncodedImage

logger = logging.getLogger("glowcheck")

SERVICE_NAME = "face-detection"


def _coerce_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_landmarks(raw: List[Dict[str, Any]]) -> List[Landmark]:
    landmarks: List[Landmark] = []
    for item in raw or []:
        landmark_type = item.get("type")
        if not landmark_type:
            continue
        position = item.get("position") or {}
        landmarks.append(
            Landmark(
                type=str(landmark_type),
                x=_coerce_float(position.get("x")),
                y=_coerce_float(position.get("y")),
            )
        )
    return landmarks


def _parse_bounding_box(raw: Optional[Dict[str, Any]]) -> Optional[BoundingBox]:
    vertices = (raw or {}).get("vertices") or []
    if len(vertices) < 3:
        return None
    # Vision omits zero coordinates from vertices.
    x0 = _coerce_float(vertices[0].get("x"))
    y0 = _coerce_float(vertices[0].get("y"))
    x1 = _coerce_float(vertices[1].get("x"))
    y2 = _coerce_float(vertices[2].get("y"))
    return BoundingBox(x=x0, y=y0, width=abs(x1 - x0), height=abs(y2 - y0))


def _parse_colors(raw: Optional[Dict[str, Any]]) -> List[DominantColor]:
    colors = ((raw or {}).get("dominantColors") or {}).get("colors") or []
    parsed: List[DominantColor] = []
    for item in colors:
        color = item.get("color") or {}
        parsed.append(
            DominantColor(
                rgb=RGB(
                    red=_coerce_float(color.get("red")),
                    green=_coerce_float(color.get("green")),
                    blue=_coerce_float(color.get("blue")),
                ),
                pixel_fraction=_coerce_float(item.get("pixelFraction")),
            )
        )
    return parsed


def _first_entry(data: Any) -> Dict[str, Any]:
    """The single ``responses[]`` entry; a missing entry reads as no face."""
    if not isinstance(data, dict):
        raise PermanentServiceError(
            "Face detection response was not a JSON object", service=SERVICE_NAME
        )
    entries = data.get("responses") or [{}]
    if not isinstance(entries, list):
        raise PermanentServiceError(
            "Face detection responses were not a list", service=SERVICE_NAME
        )
    entry = entries[0] or {}
    if not isinstance(entry, dict):
        raise PermanentServiceError(
            "Face detection entry was not an object", service=SERVICE_NAME
        )
    return entry


def parse_annotation(payload: Dict[str, Any], angle: Angle) -> FaceDetectionResult:
    """Build a FaceDetectionResult from one ``responses[]`` entry."""
    colors = _parse_colors(payload.get("imagePropertiesAnnotation"))
    faces = payload.get("faceAnnotations") or []
    if not faces:
        return FaceDetectionResult(angle=angle, dominant_colors=tuple(colors))

    face = faces[0]
    confidence = max(0.0, min(1.0, _coerce_float(face.get("detectionConfidence"))))
    return FaceDetectionResult(
        angle=angle,
        face_detected=True,
        confidence=confidence,
        landmarks=tuple(_parse_landmarks(face.get("landmarks"))),
        pose=PoseAngles(
            roll=_coerce_float(face.get("rollAngle")),
            pan=_coerce_float(face.get("panAngle")),
            tilt=_coerce_float(face.get("tiltAngle")),
        ),
        bounding_box=_parse_bounding_box(face.get("boundingPoly")),
        exposure_likelihood=Likelihood.parse(face.get("underExposedLikelihood")),
        blur_likelihood=Likelihood.parse(face.get("blurredLikelihood")),
        dominant_colors=tuple(colors),
    )


class FaceDetectionClient:
    """One outbound call per image; retries are the caller's decision."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        endpoint: str,
        timeout_s: float = 20.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._timeout_s = timeout_s
        self._client = client

    @staticmethod
    def build_request(image: EncodedImage) -> Dict[str, Any]:
        return {
            "requests": [
                {
                    "image": {"content": image.data_b64},
                    "features": [
                        {"type": "FACE_DETECTION", "maxResults": 1},
                        {"type": "IMAGE_PROPERTIES", "maxResults": 1},
                    ],
                }
            ]
        }

    async def detect(
        self, image: EncodedImage, angle: Angle = Angle.FRONT
    ) -> FaceDetectionResult:
        if not self._api_key:
            raise PermanentServiceError(
                "Face detection API key is not configured", service=SERVICE_NAME
            )

        response = await self._post(self.build_request(image))
        if response.status_code >= 400:
            raise classify_status(
                response.status_code, service=SERVICE_NAME, detail=response.text
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise PermanentServiceError(
                "Face detection response was not JSON", service=SERVICE_NAME
            ) from exc

        entry = _first_entry(data)
        error = entry.get("error")
        if error:
            details = error if isinstance(error, dict) else {"message": str(error)}
            code = details.get("code")
            raise PermanentServiceError(
                f"Face detection error: {details.get('message', 'unknown')}",
                service=SERVICE_NAME,
                status_code=code if isinstance(code, int) else None,
            )

        try:
            result = parse_annotation(entry, angle)
        except (AttributeError, TypeError, LookupError, ValueError) as exc:
            raise PermanentServiceError(
                f"Malformed face detection response: {exc}", service=SERVICE_NAME
            ) from exc
        logger.info(
            "Face detection %s: face=%s confidence=%.2f landmarks=%s",
            angle.value,
            result.face_detected,
            result.confidence,
            len(result.landmarks),
        )
        return result

    async def _post(self, body: Dict[str, Any]) -> httpx.Response:
        params = {"key": self._api_key}
        try:
            if self._client is not None:
                return await self._client.post(
                    self._endpoint, params=params, json=body, timeout=self._timeout_s
                )
            async with httpx.AsyncClient() as client:
                return await client.post(
                    self._endpoint, params=params, json=body, timeout=self._timeout_s
                )
        except httpx.TimeoutException as exc:
            raise TransientServiceError(
                f"Face detection timed out after {self._timeout_s}s",
                service=SERVICE_NAME,
            ) from exc
        except httpx.TransportError as exc:
            raise TransientServiceError(
                f"Face detection request failed: {exc.__class__.__name__}",
                service=SERVICE_NAME,
            ) from exc
