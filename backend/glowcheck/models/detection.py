"""Face detection result models."""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Angle(str, Enum):
    FRONT = "front"
    LEFT = "left"
    RIGHT = "right"


class Likelihood(str, Enum):
    UNKNOWN = "UNKNOWN"
    VERY_UNLIKELY = "VERY_UNLIKELY"
    UNLIKELY = "UNLIKELY"
    POSSIBLE = "POSSIBLE"
    LIKELY = "LIKELY"
    VERY_LIKELY = "VERY_LIKELY"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Likelihood":
        try:
            return cls(str(value or "UNKNOWN").upper())
        except ValueError:
            return cls.UNKNOWN


class Landmark(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    x: float = 0.0
    y: float = 0.0


class PoseAngles(BaseModel):
    model_config = ConfigDict(frozen=True)

    roll: float = 0.0
    pan: float = 0.0
    tilt: float = 0.0

    def max_abs(self) -> float:
        return max(abs(self.roll), abs(self.pan), abs(self.tilt))

    def total_abs(self) -> float:
        return abs(self.roll) + abs(self.pan) + abs(self.tilt)


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class RGB(BaseModel):
    model_config = ConfigDict(frozen=True)

    red: float = 0.0
    green: float = 0.0
    blue: float = 0.0


class DominantColor(BaseModel):
    model_config = ConfigDict(frozen=True)

    rgb: RGB
    pixel_fraction: float = 0.0


class FaceDetectionResult(BaseModel):
    """Detection snapshot for one photo angle. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    angle: Angle = Angle.FRONT
    face_detected: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    landmarks: Tuple[Landmark, ...] = ()
    pose: PoseAngles = Field(default_factory=PoseAngles)
    bounding_box: Optional[BoundingBox] = None
    exposure_likelihood: Likelihood = Likelihood.UNKNOWN
    blur_likelihood: Likelihood = Likelihood.UNKNOWN
    dominant_colors: Tuple[DominantColor, ...] = ()

    def landmark(self, landmark_type: str) -> Optional[Landmark]:
        for item in self.landmarks:
            if item.type == landmark_type:
                return item
        return None

    def landmark_types(self) -> set:
        return {item.type for item in self.landmarks}
