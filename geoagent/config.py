"""Settings for GeoAgent runs.

Non-secret knobs live in a YAML file (config/settings.yaml by default).
API keys and database credentials are read from the environment only:

    GROK_API_KEY            tool-calling model
    GOOGLE_GEMINI_API_KEY   long-form brief model
    TAVILY_API_KEY          web search and page extraction
    NEO4J_URI / NEO4J_USER / NEO4J_PASSWORD

NEO4J_URI and NEO4J_USER, when set, override the YAML values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

CONFIG_PATH_DEFAULT = "config/settings.yaml"

GROK_BASE_URL = "https://api.x.ai/v1"
GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


@dataclass(frozen=True)
class Settings:
    # Control loop bounds
    max_iterations: int = 15
    forced_brief_iterations: int = 2
    tool_result_char_limit: int = 15000

    # Models
    tool_model: str = "grok-3-fast"
    tool_base_url: str = GROK_BASE_URL
    longform_model: str = "gemini-2.5-flash"
    longform_base_url: str = GEMINI_OPENAI_BASE_URL

    # Graph store
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_database: str = "neo4j"

    # Local output
    brief_store_file: Optional[str] = "logs/briefs.json"
    reports_dir: str = "reports"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ConfigError("max_iterations must be at least 1")
        if not 0 <= self.forced_brief_iterations <= self.max_iterations:
            raise ConfigError("forced_brief_iterations must be between 0 and max_iterations")
        if self.tool_result_char_limit < 1:
            raise ConfigError("tool_result_char_limit must be positive")


def load_settings(config_path: str = CONFIG_PATH_DEFAULT) -> Dict[str, Any]:
    """Load YAML settings file into a dictionary."""
    path = Path(config_path)
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping, got {type(data).__name__}")
    return data


def build_settings(raw: Optional[Dict[str, Any]] = None) -> Settings:
    """Build Settings from a raw mapping plus environment overrides.

    Unknown keys are ignored so one settings file can also carry
    options for the Streamlit front panel.
    """
    raw = dict(raw or {})
    if os.getenv("NEO4J_URI"):
        raw["neo4j_uri"] = os.environ["NEO4J_URI"]
    if os.getenv("NEO4J_USER"):
        raw["neo4j_user"] = os.environ["NEO4J_USER"]

    known = {f.name: f for f in fields(Settings)}
    kwargs: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            continue
        if key in ("max_iterations", "forced_brief_iterations", "tool_result_char_limit"):
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ConfigError(f"{key} must be an integer, got {value!r}")
        kwargs[key] = value
    return Settings(**kwargs)


def get_settings(config_path: str = CONFIG_PATH_DEFAULT) -> Settings:
    """Load and validate settings in one step."""
    return build_settings(load_settings(config_path))
