"""AnalysisPipeline: the single entry point that turns photos into a result.

Stages run in order: encode, detect (per angle, concurrently), validate,
generative assessment (request then sanitize) or deterministic fallback,
synthesis. Past the validation gate every failure is absorbed by the fallback;
only FaceNotDetectedError and AnalysisUnavailableError reach the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from glowcheck.config import GlowCheckConfig
from glowcheck.errors import (
    AnalysisUnavailableError,
    FaceNotDetectedError,
    ImageEncodingError,
    ServiceError,
)
from glowcheck.models.analysis import (
    AnalysisResult,
    AnalysisStep,
    AssessmentSource,
    ImageRef,
    RawImageSet,
    ReasonCode,
)
from glowcheck.models.assessment import StructuredAssessment
from glowcheck.models.detection import Angle, FaceDetectionResult
from glowcheck.models.outcome import Outcome
from glowcheck.services.assessment_request import build_assessment_request
from glowcheck.services.face_detection import FaceDetectionClient
from glowcheck.services.face_validation import FaceValidationGate
from glowcheck.services.fallback import DeterministicFallbackGenerator
from glowcheck.services.generative import GenerativeAssessmentClient, build_providers
from glowcheck.services.image_codec import EncodedImage, ImageCodec
from glowcheck.services.retry import RetryPolicy
from glowcheck.services.sanitizer import ResponseSanitizer
from glowcheck.services.scoring import ScoreSynthesizer

logger = logging.getLogger("glowcheck")

ProgressListener = Callable[[AnalysisStep], Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _image_uri(ref: ImageRef) -> Optional[str]:
    if isinstance(ref, bytes):
        return None
    text = str(ref)
    return None if text.startswith("data:") else text


async def _notify(listener: Optional[ProgressListener], step: AnalysisStep) -> None:
    if listener is None:
        return
    try:
        pending = listener(step)
        if inspect.isawaitable(pending):
            await pending
    except Exception:
        logger.exception("Progress listener failed on %s", step.value)


class AnalysisPipeline:
    def __init__(
        self,
        *,
        codec: ImageCodec,
        detector: FaceDetectionClient,
        generative: GenerativeAssessmentClient,
        gate: Optional[FaceValidationGate] = None,
        sanitizer: Optional[ResponseSanitizer] = None,
        fallback: Optional[DeterministicFallbackGenerator] = None,
        synthesizer: Optional[ScoreSynthesizer] = None,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._codec = codec
        self._detector = detector
        self._generative = generative
        self._gate = gate or FaceValidationGate()
        self._sanitizer = sanitizer or ResponseSanitizer()
        self._fallback = fallback or DeterministicFallbackGenerator()
        self._synthesizer = synthesizer or ScoreSynthesizer()
        self._retry = retry_policy or RetryPolicy()
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: GlowCheckConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ) -> "AnalysisPipeline":
        retry_policy = RetryPolicy(
            max_retries=config.max_retries,
            base_delay_s=config.retry_base_delay_s,
            sleep=sleep or asyncio.sleep,
        )
        return cls(
            codec=ImageCodec(timeout_s=config.detection_timeout_s, client=client),
            detector=FaceDetectionClient(
                config.vision_api_key,
                endpoint=config.vision_endpoint,
                timeout_s=config.detection_timeout_s,
                client=client,
            ),
            generative=GenerativeAssessmentClient(
                build_providers(config, client=client), retry_policy
            ),
            retry_policy=retry_policy,
        )

    async def analyze(
        self,
        images: RawImageSet,
        on_progress: Optional[ProgressListener] = None,
    ) -> AnalysisResult:
        """Run the full pipeline for one image set.

        Raises FaceNotDetectedError when the front photo is unusable and
        AnalysisUnavailableError when face detection cannot be reached.
        """
        is_multi_angle = images.is_multi_angle
        logger.info(
            "Starting %s analysis", "multi-angle" if is_multi_angle else "single-angle"
        )
        encoded = await self._encode(images)
        front, profiles = await self._detect_and_validate(encoded)
        await _notify(on_progress, AnalysisStep.DETECTION_DONE)

        front_image = encoded[Angle.FRONT]
        usable = {Angle.FRONT: front, **profiles}
        outcome = await self._generative_assessment(usable, is_multi_angle, front_image)
        if outcome.ok:
            assessment = outcome.value
            source = AssessmentSource.GENERATIVE
        else:
            logger.warning("Falling back to deterministic assessment (%s)", outcome.describe())
            assessment = self._fallback.generate(front_image.identifier, front)
            source = AssessmentSource.FALLBACK
        await _notify(on_progress, AnalysisStep.ASSESSMENT_DONE)

        result = self._synthesizer.synthesize(
            assessment,
            source=source,
            front=front,
            profiles=profiles,
            is_multi_angle=is_multi_angle,
            timestamp=self._clock(),
            image_uri=_image_uri(images.front),
        )
        await _notify(on_progress, AnalysisStep.SYNTHESIS_DONE)
        return result

    async def _encode(self, images: RawImageSet) -> Dict[Angle, EncodedImage]:
        refs = images.by_angle()
        results = await asyncio.gather(
            *(self._codec.encode(ref) for ref in refs.values()),
            return_exceptions=True,
        )
        encoded: Dict[Angle, EncodedImage] = {}
        for angle, result in zip(refs, results):
            if isinstance(result, ImageEncodingError):
                if angle == Angle.FRONT:
                    logger.warning("Front image unreadable: %s", result)
                    raise FaceNotDetectedError(
                        "We could not read your photo. Please retake it.",
                        reasons=[ReasonCode.IMAGE_UNREADABLE.value],
                    ) from result
                logger.warning("Dropping unreadable %s image: %s", angle.value, result)
                continue
            if isinstance(result, BaseException):
                raise result
            encoded[angle] = result
        return encoded

    async def _detect(self, image: EncodedImage, angle: Angle) -> FaceDetectionResult:
        return await self._retry.run(
            partial(self._detector.detect, image, angle),
            label=f"detection[{angle.value}]",
        )

    async def _detect_and_validate(
        self, encoded: Mapping[Angle, EncodedImage]
    ) -> tuple[FaceDetectionResult, Dict[Angle, FaceDetectionResult]]:
        """Detect every angle concurrently; the front verdict short-circuits."""
        tasks = {
            angle: asyncio.create_task(self._detect(image, angle))
            for angle, image in encoded.items()
        }
        try:
            try:
                front = await tasks[Angle.FRONT]
            except ServiceError as exc:
                logger.error("Front face detection unavailable: %s", exc)
                raise AnalysisUnavailableError(
                    "Face detection service is unavailable."
                ) from exc
            front_verdict = self._gate.require_front(front)

            detections: Dict[Angle, FaceDetectionResult] = {Angle.FRONT: front}
            for angle, task in tasks.items():
                if angle == Angle.FRONT:
                    continue
                try:
                    detections[angle] = await task
                except ServiceError as exc:
                    logger.warning("Dropping %s profile, detection failed: %s", angle.value, exc)
        finally:
            pending = [task for task in tasks.values() if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        verdict = self._gate.evaluate(detections, front_verdict=front_verdict)
        profiles = {angle: detections[angle] for angle in verdict.passed_profiles()}
        return front, profiles

    async def _generative_assessment(
        self,
        detections: Mapping[Angle, FaceDetectionResult],
        is_multi_angle: bool,
        front_image: EncodedImage,
    ) -> Outcome[StructuredAssessment]:
        prompt = build_assessment_request(
            detections, is_multi_angle, front_image=front_image
        )
        try:
            raw_text = await self._generative.request(prompt)
        except ServiceError as exc:
            return Outcome.failure("generative", exc)
        except Exception as exc:
            logger.exception("Unexpected generative assessment failure")
            return Outcome.failure("generative", exc)
        try:
            return self._sanitizer.parse(raw_text)
        except Exception as exc:
            logger.exception("Unexpected failure sanitizing assessment output")
            return Outcome.failure("sanitize", exc)
