"""Health check endpoint."""

import os
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from glowcheck.auth import require_auth_enabled
from glowcheck.config import GlowCheckConfig
from glowcheck.db import mongo_check
from glowcheck.dependencies import get_config
from glowcheck.models.health import HealthStatus, MongoStatus

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
def health_check(config: GlowCheckConfig = Depends(get_config)) -> HealthStatus:
    """Report database reachability and which external services are configured."""
    ok, summary, err = mongo_check()
    configured = config.configured_providers()
    vision_configured = bool(config.vision_api_key)
    return HealthStatus(
        status="ok" if ok and vision_configured else "degraded",
        time=datetime.now(timezone.utc),
        mongo=MongoStatus(
            reachable=ok, host=summary.get("host"), db=summary.get("db"), error=err
        ),
        vision_configured=vision_configured,
        assessment_providers={
            name: configured.get(name, False) for name in config.assessment_providers
        },
        auth_required=require_auth_enabled(),
        jwt_configured=bool(os.environ.get("JWT_SECRET")),
    )
