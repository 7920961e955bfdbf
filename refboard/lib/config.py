"""
Configuration loader for the kanban store.

Finds the project root (the nearest directory holding kanban.yaml) and loads
kanban.yaml. If no config file exists, returns defaults.

Example kanban.yaml:

    kanban_dir: docs/kanban
    default_board_type: sprint
    default_column: todo
    lock_timeout: 30
    board_types:
      sprint:
        - {id: todo, name: To Do}
        - {id: done, name: Done}
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from . import validate
from .constants import BOARD_TYPES

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "kanban.yaml"
DEFAULT_KANBAN_DIR = "docs/kanban"
DEFAULT_COLUMN = "planning"
DEFAULT_LOCK_TIMEOUT = 30


class ConfigError(Exception):
    """kanban.yaml could not be parsed or does not match its schema."""


@dataclass
class KanbanConfig:
    """Project-level configuration from kanban.yaml."""
    project_root: Path
    kanban_dir: Path
    default_board_type: str = "project"
    default_column: str = DEFAULT_COLUMN
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT
    board_types: dict[str, list[dict]] = field(default_factory=dict)


def find_project_root(start: Optional[Path] = None) -> Path:
    """Walk up from start until a directory containing kanban.yaml is found.

    Falls back to start itself (the working directory by default).
    """
    start = (start or Path.cwd()).resolve()
    for candidate in (start, *start.parents):
        if (candidate / CONFIG_FILENAME).exists():
            return candidate
    return start


def load_config(project_root: Path) -> KanbanConfig:
    """Load kanban.yaml from project_root and return KanbanConfig.

    Raises:
        ConfigError: If the file is not valid YAML or fails schema validation
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        return KanbanConfig(project_root=project_root, kanban_dir=project_root / DEFAULT_KANBAN_DIR)

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {config_path}: {e}") from None

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    try:
        validate.validate(data, "config")
    except validate.ValidationError as e:
        raise ConfigError(f"Invalid {config_path}: {e}") from None

    board_type = data.get("default_board_type", "project")
    if board_type not in BOARD_TYPES:
        logger.warning(f"Unknown default_board_type '{board_type}' in {config_path}, using 'project'")
        board_type = "project"

    unknown_presets = set(data.get("board_types", {})) - set(BOARD_TYPES)
    for name in sorted(unknown_presets):
        logger.warning(f"Ignoring column preset for unknown board type '{name}'")

    return KanbanConfig(
        project_root=project_root,
        kanban_dir=project_root / data.get("kanban_dir", DEFAULT_KANBAN_DIR),
        default_board_type=board_type,
        default_column=data.get("default_column", DEFAULT_COLUMN),
        lock_timeout=data.get("lock_timeout", DEFAULT_LOCK_TIMEOUT),
        board_types={
            name: columns
            for name, columns in data.get("board_types", {}).items()
            if name in BOARD_TYPES
        },
    )
