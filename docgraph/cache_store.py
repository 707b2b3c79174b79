"""Flat-file persistence for cache metadata, artifacts and change logs.

Layout under ``<project>/.docgraph/``::

    cache-metadata.json      metadata key
    context.md               artifact key
    context-base.md          artifact-baseline key (last full rebuild)
    file-rankings.json       rankings key
    context-diffs/           one JSON per incremental update + accumulated.json

The store assumes a single writer per project directory. Writes go through a
temporary file and :func:`os.replace`, so a concurrent reader sees either the
old or the new content, never a partial file.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .errors import CacheCorruptionError
from .models import FULL, CacheMetadata, FileChange, UpdateDecision, UpdateRecord

logger = logging.getLogger(__name__)

CACHE_KEYS: Dict[str, str] = {
    "metadata": "cache-metadata.json",
    "artifact": "context.md",
    "artifact-baseline": "context-base.md",
    "rankings": "file-rankings.json",
}

DIFFS_DIR = "context-diffs"
ACCUMULATED_FILE = "accumulated.json"

GIT_HASH_RE = re.compile(r"^<!-- git-hash: (.+) -->$", re.MULTILINE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ===================================================================
# Git-hash trailer helpers
# ===================================================================

def read_hash_trailer(text: str) -> Optional[str]:
    match = GIT_HASH_RE.search(text)
    return match.group(1) if match else None


def strip_hash_trailer(text: str) -> str:
    return GIT_HASH_RE.sub("", text).rstrip()


def with_hash_trailer(text: str, git_hash: Optional[str]) -> str:
    """Return *text* carrying exactly one ``<!-- git-hash: ... -->`` trailer."""
    body = strip_hash_trailer(text)
    if not git_hash:
        return body
    return f"{body}\n\n<!-- git-hash: {git_hash} -->"


# ===================================================================
# CacheStore
# ===================================================================

class CacheStore:
    """Key/value store over the project's cache directory."""

    def __init__(self, project_dir: Path, cache_dir_name: Optional[str] = None) -> None:
        self.project_dir = Path(project_dir)
        self.cache_dir = self.project_dir / (cache_dir_name or config.CACHE_DIR_NAME)

    # ------------------------------------------------------------------
    # Raw key/value
    # ------------------------------------------------------------------

    def ensure_dirs(self) -> None:
        for path in (self.cache_dir, self.cache_dir / DIFFS_DIR):
            path.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        try:
            return self.cache_dir / CACHE_KEYS[key]
        except KeyError:
            raise ValueError(f"Unknown cache key: {key!r}") from None

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    def write(self, key: str, data: bytes) -> None:
        self._atomic_write(self.path_for(key), data)

    def _atomic_write(self, path: Path, data: bytes) -> None:
        self.ensure_dirs()
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Cache written: %s", path.name)

    def read_json(self, key: str) -> Optional[Any]:
        """Decode a JSON key; ``None`` when absent.

        Raises:
            CacheCorruptionError: if the key exists but is not valid JSON.
        """
        raw = self.read(key)
        if raw is None:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheCorruptionError(key, str(exc)) from exc

    def write_json(self, key: str, payload: Any) -> None:
        self.write(key, json.dumps(payload, indent=2).encode("utf-8"))

    def read_text(self, key: str) -> Optional[str]:
        raw = self.read(key)
        if raw is None:
            return None
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("Cache key %s is not valid UTF-8, treating as missing: %s", key, exc)
            return None

    def write_text(self, key: str, text: str) -> None:
        self.write(key, text.encode("utf-8"))

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def load_metadata(self) -> Optional[CacheMetadata]:
        """Stored metadata, or ``None`` when absent or corrupt."""
        try:
            payload = self.read_json("metadata")
        except CacheCorruptionError as exc:
            logger.warning("%s; treating as cache miss", exc)
            return None
        if payload is None:
            return None
        try:
            return CacheMetadata.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Cache metadata does not match schema (%s); treating as cache miss", exc)
            return None

    def get_metadata(self) -> CacheMetadata:
        """Stored metadata or a fresh record for a first run."""
        existing = self.load_metadata()
        if existing is not None:
            return existing
        now = utc_now().isoformat()
        return CacheMetadata(version=config.CACHE_SCHEMA_VERSION, created=now, last_update=now)

    def save_metadata(self, metadata: CacheMetadata) -> None:
        self.write_json("metadata", metadata.to_dict())

    def record_update(
        self,
        decision: UpdateDecision,
        current_hash: Optional[str],
        now: Optional[datetime] = None,
    ) -> CacheMetadata:
        """Persist the bookkeeping for a decision the caller has acted on."""
        now = now or utc_now()
        stamp = now.isoformat()
        metadata = self.get_metadata()
        impact = decision.impact

        metadata.update_history.append(UpdateRecord(
            timestamp=stamp,
            kind=decision.kind,
            from_hash=metadata.last_git_hash,
            to_hash=current_hash,
            file_count=impact.file_count if impact else 0,
            total_lines=impact.total_lines if impact else 0,
        ))
        metadata.update_history = metadata.update_history[-config.MAX_UPDATE_HISTORY:]
        metadata.last_git_hash = current_hash
        metadata.last_update = stamp
        if decision.kind == FULL:
            metadata.last_full_analysis = stamp
            self.reset_accumulated_changes()
        elif impact is not None and impact.files and current_hash:
            self.save_incremental_change(current_hash, impact.files, stamp)

        self.save_metadata(metadata)
        return metadata

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def load_artifact(self) -> Optional[str]:
        return self.read_text("artifact")

    def save_artifact(self, content: str, baseline: bool = False) -> None:
        self.write_text("artifact", content)
        if baseline:
            self.write_text("artifact-baseline", content)

    def artifact_age_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
        metadata = self.load_metadata()
        last = _parse_ts(metadata.last_update) if metadata else None
        if last is None:
            return None
        return ((now or utc_now()) - last).total_seconds()

    def get_artifact_with_fallback(
        self,
        max_age_seconds: float = config.ARTIFACT_MAX_AGE_SECONDS,
        allow_stale: bool = False,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """Cached artifact if it is recent enough (or staleness is allowed)."""
        content = self.load_artifact()
        if content is None:
            return None
        if allow_stale:
            return content
        age = self.artifact_age_seconds(now)
        if age is not None and age < max_age_seconds:
            logger.info("Using cached artifact (%.0fs old)", age)
            return content
        return None

    # ------------------------------------------------------------------
    # Incremental change log
    # ------------------------------------------------------------------

    def _accumulated_path(self) -> Path:
        return self.cache_dir / DIFFS_DIR / ACCUMULATED_FILE

    def save_incremental_change(self, current_hash: str, files: List[FileChange], timestamp: str) -> None:
        record = {
            "current_hash": current_hash,
            "timestamp": timestamp,
            "files": [f.to_dict() for f in files],
        }
        path = self.cache_dir / DIFFS_DIR / f"{current_hash[:8]}.json"
        self._atomic_write(path, json.dumps(record, indent=2).encode("utf-8"))
        self._update_accumulated(record)

    def load_accumulated_changes(self) -> Optional[Dict[str, Any]]:
        path = self._accumulated_path()
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Accumulated change log unreadable, starting over: %s", exc)
            return None

    def _update_accumulated(self, record: Dict[str, Any]) -> None:
        accumulated = self.load_accumulated_changes() or {
            "files": {},
            "total_changes": 0,
            "since": record["timestamp"],
        }
        for change in record["files"]:
            entry = accumulated["files"].setdefault(
                change["path"], {"added": 0, "deleted": 0, "changes": []},
            )
            entry["added"] += change.get("added", 0)
            entry["deleted"] += change.get("deleted", 0)
            entry["changes"].append({
                "hash": record["current_hash"],
                "timestamp": record["timestamp"],
                "lines": change.get("lines", 0),
            })
        accumulated["total_changes"] += 1
        accumulated["last_update"] = record["timestamp"]
        self._atomic_write(self._accumulated_path(), json.dumps(accumulated, indent=2).encode("utf-8"))

    def reset_accumulated_changes(self) -> None:
        diffs = self.cache_dir / DIFFS_DIR
        if not diffs.is_dir():
            return
        for child in diffs.glob("*.json"):
            child.unlink()

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------

    def save_rankings(self, rankings: List[Dict[str, Any]]) -> None:
        self.write_json("rankings", rankings)

    def load_rankings(self) -> List[Dict[str, Any]]:
        try:
            payload = self.read_json("rankings")
        except CacheCorruptionError as exc:
            logger.warning("%s; ignoring cached rankings", exc)
            return []
        return payload if isinstance(payload, list) else []

    # ------------------------------------------------------------------
    # Clear
    # ------------------------------------------------------------------

    def clear(self) -> int:
        """Delete every cached file; returns how many were removed."""
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for child in sorted(self.cache_dir.glob("**/*"), reverse=True):
            if child.is_file() and child.name != "config.toml":
                child.unlink()
                removed += 1
        logger.info("Cache cleared: %d files removed from %s", removed, self.cache_dir)
        return removed
