"""Analysis history: trimmed results stored per owner in MongoDB."""

from __future__ import annotations

import logging
from typing import List

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from glowcheck.models.analysis import AnalysisHistoryItem, AnalysisResult

logger = logging.getLogger("glowcheck")

HISTORY_TIPS_LIMIT = 3


def trim_result(result: AnalysisResult) -> AnalysisHistoryItem:
    """Drop the image reference and keep the first three tips."""
    return AnalysisHistoryItem(
        overall_score=result.overall_score,
        rating=result.rating,
        skin_type=result.skin_type,
        skin_tone=result.skin_tone,
        skin_quality=result.skin_quality,
        skin_potential=result.skin_potential,
        detailed_scores=result.detailed_scores,
        dermatology_insights=result.dermatology_insights,
        personalized_tips=result.personalized_tips[:HISTORY_TIPS_LIMIT],
        confidence=result.confidence,
        assessment_source=result.assessment_source,
        timestamp=result.timestamp,
    )


def save_analysis(collection, user_id: str, result: AnalysisResult) -> bool:
    """Store a trimmed result. Failures are logged and reported as False."""
    item = trim_result(result)
    doc = item.model_dump(mode="json")
    # Keep a BSON date so history sorts chronologically.
    doc["timestamp"] = item.timestamp
    doc["user_id"] = user_id
    try:
        collection.insert_one(doc)
    except PyMongoError as e:
        logger.warning("Failed to save analysis history for %s: %s", user_id, e)
        return False
    return True


def list_analyses(collection, user_id: str, limit: int = 5) -> List[AnalysisHistoryItem]:
    """Newest first, at most ``limit`` items."""
    cursor = (
        collection.find({"user_id": user_id}, {"_id": 0, "user_id": 0})
        .sort("timestamp", DESCENDING)
        .limit(max(1, limit))
    )
    return [AnalysisHistoryItem.model_validate(doc) for doc in cursor]
