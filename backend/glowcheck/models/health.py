"""Service status reported by GET /health."""

import sys
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class MongoStatus(BaseModel):
    reachable: bool = False
    host: Optional[str] = None
    db: Optional[str] = None
    error: Optional[str] = None


class HealthStatus(BaseModel):
    # "degraded" when history storage or face detection cannot work.
    status: str = "ok"
    time: datetime
    python: str = Field(default_factory=lambda: sys.version.split()[0])
    mongo: MongoStatus = Field(default_factory=MongoStatus)
    vision_configured: bool = False
    # Provider name -> has credentials, in fallback order.
    assessment_providers: Dict[str, bool] = Field(default_factory=dict)
    auth_required: bool = False
    jwt_configured: bool = False
