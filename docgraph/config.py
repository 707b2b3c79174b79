"""Configuration paths and defaults for docgraph."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("DOCGRAPH_HOME", str(Path.home() / ".docgraph"))).expanduser()
USER_CONFIG_FILE = BASE_DIR / "config.toml"
CACHE_DIR_NAME = os.environ.get("DOCGRAPH_CACHE_DIR", ".docgraph")

CACHE_SCHEMA_VERSION = "0.1.0"
MAX_UPDATE_HISTORY = 20

# Indexing
READ_BATCH_SIZE = 10
HEADER_BYTES = 1024
MAX_FILE_SIZE = 1024 * 1024
DEFAULT_MAX_DEPTH = 10

# Ranking
DEFAULT_TOP_K = 10
PREVIEW_LINES = 50
HISTORY_WINDOW = 30

# Artifact freshness used by the context fallback
ARTIFACT_MAX_AGE_SECONDS = 60 * 60
