"""MongoDB access for analysis history."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus, urlsplit

import certifi
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger("glowcheck")

DEFAULT_DB_NAME = "glowcheck"
HISTORY_COLLECTION = "analysis_history"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class MongoSettings:
    uri: str
    db_name: str
    server_selection_timeout_ms: int = 5000
    connect_timeout_ms: int = 5000

    @property
    def uses_tls(self) -> bool:
        return (
            self.uri.startswith("mongodb+srv://")
            or "tls=true" in self.uri
            or "ssl=true" in self.uri
        )


def mongo_settings() -> MongoSettings:
    """MONGODB_URI when set, else a URI assembled from the MONGO_* variables."""
    db_name = os.environ.get("MONGO_DB", DEFAULT_DB_NAME)
    uri = os.environ.get("MONGODB_URI")
    if not uri:
        host = os.environ.get("MONGO_HOST", "localhost")
        port = os.environ.get("MONGO_PORT", "27017")
        user = os.environ.get("MONGO_USER")
        password = os.environ.get("MONGO_PASSWORD")
        if user and password:
            auth_source = os.environ.get("MONGO_AUTH_SOURCE", db_name)
            uri = (
                f"mongodb://{quote_plus(user)}:{quote_plus(password)}@{host}:{port}/{db_name}"
                f"?authSource={quote_plus(auth_source)}"
            )
        else:
            uri = f"mongodb://{host}:{port}/{db_name}"
    return MongoSettings(
        uri=uri,
        db_name=db_name,
        server_selection_timeout_ms=_env_int("MONGO_SERVER_SELECTION_TIMEOUT_MS", 5000),
        connect_timeout_ms=_env_int("MONGO_CONNECT_TIMEOUT_MS", 5000),
    )


def mongo_uri_summary(uri: Optional[str] = None) -> dict:
    """Host and database of the URI, never the credentials."""
    parts = urlsplit(uri or mongo_settings().uri)
    host = parts.netloc.rsplit("@", 1)[-1]
    return {
        "host": host or None,
        "db": (parts.path or "").lstrip("/") or None,
    }


@lru_cache(maxsize=1)
def get_mongo_client() -> MongoClient:
    settings = mongo_settings()
    kwargs = {
        "serverSelectionTimeoutMS": settings.server_selection_timeout_ms,
        "connectTimeoutMS": settings.connect_timeout_ms,
    }
    if settings.uses_tls:
        kwargs["tlsCAFile"] = certifi.where()
    return MongoClient(settings.uri, **kwargs)


def mongo_check() -> tuple[bool, dict, Optional[str]]:
    """
    Ping the server.

    Returns (ok, summary, error_string).
    """
    summary = mongo_uri_summary()
    try:
        get_mongo_client().admin.command("ping")
    except PyMongoError as e:
        return False, summary, f"{e.__class__.__name__}: {e}"
    return True, summary, None


def get_database():
    # The URI path names the database; MONGO_DB covers URIs without one.
    client = get_mongo_client()
    db = client.get_default_database(default=mongo_settings().db_name)
    return db


def get_history_collection():
    return get_database()[HISTORY_COLLECTION]


def ensure_history_indexes(collection) -> bool:
    """Index history by owner, newest first. Returns False if Mongo refused."""
    try:
        collection.create_index(
            [("user_id", ASCENDING), ("timestamp", DESCENDING)],
            name="user_timestamp",
        )
    except PyMongoError as e:
        logger.warning("Could not create history indexes: %s", e)
        return False
    return True
