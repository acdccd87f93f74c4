"""GlowCheck analysis API."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from glowcheck.db import ensure_history_indexes, get_history_collection
from glowcheck.dependencies import get_config
from glowcheck.routes import register_routes

# Ensure backend/.env is loaded regardless of launch directory.
load_dotenv(Path(__file__).resolve().parents[1] / ".env")

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("glowcheck")

app = FastAPI(title="GlowCheck Analysis API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:8081",
        "http://localhost:19006",
        "http://localhost:5173",
    ],
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)


@app.on_event("startup")
def _startup() -> None:
    config = get_config()
    configured = config.configured_providers()
    logger.info(
        "GlowCheck starting: vision=%s providers=%s",
        "configured" if config.vision_api_key else "missing",
        [name for name in config.assessment_providers if configured.get(name)],
    )
    if not config.vision_api_key:
        logger.warning("GOOGLE_VISION_API_KEY is not set; analyses will return 503")
    ensure_history_indexes(get_history_collection())
