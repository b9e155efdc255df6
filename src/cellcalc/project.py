"""Project-level configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "cellcalc.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
    "log_successful_evaluations": False,
}


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``cellcalc.yaml``, with defaults.

    Unknown keys are kept so callers can read their own options.

    Args:
        project_dir: Root of the cellcalc project.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the file does not hold a mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = Path(project_dir) / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path}: expected a mapping, got {type(user_config).__name__}")
        config.update(user_config)
    return config
