# docmemory/config.py
"""
Configuration for the document memory service.

Tunable constants live at module level. Deployment settings (model
deployments, provider endpoint, credentials, database path) come from the
environment and are validated once at startup by ``load_settings``.
"""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from docmemory.errors import ConfigurationError


# ========== COLLECTIONS ==========

DOC_COLLECTION = "docs"  # document metadata rows
BLOB_COLLECTION = "blob"  # chunk memory records of ingested documents


# ========== DOCUMENT PROCESSING ==========

# Ingestion chunk budget, in words
MAX_CHUNK_SIZE = 512

# Remote document limits
MAX_FILE_SIZE_MB = 10
HTTP_TIMEOUT_SECONDS = 60


# ========== EMBEDDING CONFIGURATION ==========

EMBED_BATCH_SIZE = 32


# ========== QUERY DEFAULTS ==========

DEFAULT_QUERY_MAX_TOKENS = 1000
DEFAULT_QUERY_LIMIT = 3
DEFAULT_MIN_RELEVANCE_SCORE = 0.77
# - Below this score a stored chunk is not considered relevant
# - Scores are cosine similarities, 0.0 - 1.0


# ========== ENVIRONMENT ==========

REQUIRED_ENV_VARS = (
    "GPT_DEPLOYMENT_NAME",
    "ADA_DEPLOYMENT_NAME",
    "ENDPOINT",
    "API_KEY",
    "SQLITE_DB_PATH",
)

DEFAULT_API_VERSION = "2024-02-01"


class Settings(BaseModel):
    """Deployment settings resolved from the environment."""

    gpt_deployment_name: str
    ada_deployment_name: str
    endpoint: str
    api_key: str
    sqlite_db_path: str

    api_version: str = DEFAULT_API_VERSION
    qdrant_url: Optional[str] = None
    qdrant_api_key: Optional[str] = None
    vector_store_path: str = "vectors"
    temp_dir: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Reads a .env file first when no explicit mapping is given. Raises
    ConfigurationError naming every missing required variable.
    """

    if environ is None:
        load_dotenv()
        environ = os.environ

    missing = [
        name for name in REQUIRED_ENV_VARS
        if not (environ.get(name) or "").strip()
    ]

    if missing:
        raise ConfigurationError(
            "Please set the following environment variables: "
            + ", ".join(missing)
        )

    db_path = environ["SQLITE_DB_PATH"].strip()

    default_vectors = os.path.join(
        os.path.dirname(os.path.abspath(db_path)),
        "vectors",
    )

    return Settings(
        gpt_deployment_name=environ["GPT_DEPLOYMENT_NAME"].strip(),
        ada_deployment_name=environ["ADA_DEPLOYMENT_NAME"].strip(),
        endpoint=environ["ENDPOINT"].strip(),
        api_key=environ["API_KEY"].strip(),
        sqlite_db_path=db_path,
        api_version=environ.get("API_VERSION") or DEFAULT_API_VERSION,
        qdrant_url=environ.get("QDRANT_URL") or None,
        qdrant_api_key=environ.get("QDRANT_API_KEY") or None,
        vector_store_path=environ.get("VECTOR_STORE_PATH") or default_vectors,
        temp_dir=environ.get("TEMP_DIR") or None,
        log_level=environ.get("LOG_LEVEL") or "INFO",
        log_file=environ.get("LOG_FILE") or None,
    )
