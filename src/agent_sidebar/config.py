"""Configuration utilities for the sidebar service."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "AGENT_SIDEBAR_CONFIG"
DEFAULT_CONFIG_PATH = (
    Path.home() / ".config" / "agent-sidebar" / "config.json"
)
STATE_FILE_NAME = "state.json"


def config_path() -> Path:
    """Return the filesystem path where config is stored."""

    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()

    return DEFAULT_CONFIG_PATH


def default_state_path() -> str:
    """Store sidebar state next to the config file."""

    return str(config_path().parent / STATE_FILE_NAME)


@dataclass
class SidebarConfig:
    """Serializable configuration for the sidebar view model."""

    visible_root_limit: int = 3
    indent_step: int = 14
    state_path: str = field(default_factory=default_state_path)

    def to_dict(self) -> dict:
        """Return the config as a JSON-serializable dictionary."""

        data = asdict(self)
        data["state_path"] = str(Path(self.state_path).expanduser())
        return data


def _positive_int(value, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return default
    return value


def load_config() -> SidebarConfig:
    """Load configuration from disk, falling back to defaults."""

    path = config_path()
    if not path.exists():
        return SidebarConfig()

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError:
        # Malformed config; fall back to defaults but keep original file for inspection.
        logger.warning(f"Ignoring malformed config at {path}")
        return SidebarConfig()

    if not isinstance(data, dict):
        return SidebarConfig()

    config = SidebarConfig()
    config.visible_root_limit = _positive_int(data.get("visible_root_limit"), config.visible_root_limit)
    # Zero indent is allowed; it flattens the nesting visually.
    indent = data.get("indent_step")
    if isinstance(indent, int) and not isinstance(indent, bool) and indent >= 0:
        config.indent_step = indent
    state_path = data.get("state_path")
    if isinstance(state_path, str) and state_path.strip():
        config.state_path = str(Path(state_path).expanduser().resolve())
    return config


def save_config(config: SidebarConfig) -> None:
    """Persist configuration to disk."""

    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2))
