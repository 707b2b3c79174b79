"""TOML-backed tuning for impact thresholds and ranking weights.

Lookup order: ``<project>/.docgraph/config.toml``, then the user-level
``$DOCGRAPH_HOME/config.toml``, then the built-in defaults. Only the
``[thresholds]`` and ``[ranking]`` sections are read; unknown keys are
ignored.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass
class ImpactThresholds:
    """Policy constants for the cache decision engine."""
    full_files: int = 10
    full_lines: int = 500
    api_files: int = 2
    multi_module_lines: int = 100
    max_single_file_lines: int = 1000
    partial_files: int = 5
    partial_single_file_lines: int = 200
    many_modules: int = 2


@dataclass
class RankingWeights:
    """Weights and knobs for smart file selection."""
    recency: float = 50.0
    fan_in: float = 10.0
    complexity: float = 5.0
    centrality: float = 8.0
    file_type: float = 7.0
    complexity_size: int = 10000
    history_window: int = config.HISTORY_WINDOW
    preview_lines: int = config.PREVIEW_LINES
    top_k: int = config.DEFAULT_TOP_K


@dataclass
class Settings:
    thresholds: ImpactThresholds
    ranking: RankingWeights


def project_config_file(project_dir: Path) -> Path:
    return Path(project_dir) / config.CACHE_DIR_NAME / "config.toml"


def _read_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _apply(section: Dict[str, Any], target: Any, source: Path) -> None:
    known = {f.name for f in fields(target)}
    for key, value in section.items():
        if key not in known:
            logger.debug("Unknown key %r in %s", key, source)
            continue
        current = getattr(target, key)
        try:
            setattr(target, key, type(current)(value))
        except (TypeError, ValueError):
            logger.warning("Invalid value for %s in %s: %r", key, source, value)


def load_settings(project_dir: Optional[Path] = None) -> Settings:
    """Merge user-level and project-level TOML over the defaults."""
    settings = Settings(thresholds=ImpactThresholds(), ranking=RankingWeights())
    sources = [config.USER_CONFIG_FILE]
    if project_dir is not None:
        sources.append(project_config_file(project_dir))
    for path in sources:
        data = _read_toml(path)
        if isinstance(data.get("thresholds"), dict):
            _apply(data["thresholds"], settings.thresholds, path)
        if isinstance(data.get("ranking"), dict):
            _apply(data["ranking"], settings.ranking, path)
    return settings


def save_config(section: str, values: Dict[str, Any], path: Optional[Path] = None) -> bool:
    """Write one section into a TOML file, preserving the other sections.

    Args:
        section: Section name, e.g. ``"thresholds"``.
        values: Keys to set in that section.
        path: Target file; defaults to the user-level config.

    Returns:
        True if saved successfully, False otherwise.
    """
    target = path or config.USER_CONFIG_FILE
    data = _read_toml(target)
    merged = dict(data.get(section) or {})
    merged.update(values)
    data[section] = merged
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            toml.dump(data, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", target, exc)
        return False


def settings_as_dict(settings: Settings) -> Dict[str, Dict[str, Any]]:
    return {"thresholds": asdict(settings.thresholds), "ranking": asdict(settings.ranking)}
