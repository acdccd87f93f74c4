"""Facial analysis routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from glowcheck.auth import current_owner
from glowcheck.config import GlowCheckConfig
from glowcheck.dependencies import (
    get_analyses_collection,
    get_analysis_pipeline,
    get_config,
)
from glowcheck.errors import AnalysisUnavailableError, FaceNotDetectedError
from glowcheck.models.analysis import (
    AnalysisHistoryItem,
    AnalysisResult,
    AnalysisStep,
    RawImageSet,
)
from glowcheck.services.history import list_analyses, save_analysis
from glowcheck.services.pipeline import AnalysisPipeline

logger = logging.getLogger("glowcheck")

router = APIRouter()


async def _read_optional(upload: Optional[UploadFile]) -> Optional[bytes]:
    if upload is None:
        return None
    return await upload.read()


def _log_progress(step: AnalysisStep) -> None:
    logger.debug("Analysis progress: %s", step.value)


@router.post("", response_model=AnalysisResult)
async def create_analysis(
    front: UploadFile = File(...),
    left: Optional[UploadFile] = File(default=None),
    right: Optional[UploadFile] = File(default=None),
    owner: str = Depends(current_owner),
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
    collection=Depends(get_analyses_collection),
) -> AnalysisResult:
    """
    Analyze a front photo plus optional left/right profiles.

    Raises:
        HTTPException 422: The front photo has no usable face (retake).
        HTTPException 503: Face detection is unreachable.
    """
    images = RawImageSet(
        front=await front.read(),
        left=await _read_optional(left),
        right=await _read_optional(right),
    )
    try:
        result = await pipeline.analyze(images, on_progress=_log_progress)
    except FaceNotDetectedError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": e.message,
                "reasons": e.reasons,
                "angle": e.angle,
                "can_retry": True,
            },
        )
    except AnalysisUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    save_analysis(collection, owner, result)
    return result


@router.get("/history", response_model=List[AnalysisHistoryItem])
def analysis_history(
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    owner: str = Depends(current_owner),
    config: GlowCheckConfig = Depends(get_config),
    collection=Depends(get_analyses_collection),
) -> List[AnalysisHistoryItem]:
    """Most recent trimmed results for the caller, newest first."""
    return list_analyses(collection, owner, limit or config.analysis_history_limit)
