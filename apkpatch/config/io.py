"""Config I/O utilities."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .models import BuildToolsConfig, validate_config
from .schema import validate_config_schema

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
CONFIG_ENV_VAR = "APKPATCH_CONFIG"


class ConfigStatus(Enum):
    OK = "ok"
    ABSENT = "absent"
    MALFORMED = "malformed"
    INVALID = "invalid"


@dataclass
class ConfigLoadResult:
    status: ConfigStatus
    path: str
    config: Optional[BuildToolsConfig] = None
    error: Optional[str] = None
    missing_tools: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == ConfigStatus.OK


def get_config_path(base_dir: Union[str, Path, None] = None) -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(base_dir or os.getcwd()) / CONFIG_FILE_NAME


def load_build_tools_config(config_path: Union[str, Path, None] = None) -> ConfigLoadResult:
    """Load and validate the build tools configuration.

    Distinguishes an absent file from one that is present but unreadable
    (MALFORMED) or that fails validation or points at missing tools (INVALID).
    """
    path = Path(config_path) if config_path is not None else get_config_path()
    if not path.is_file():
        return ConfigLoadResult(ConfigStatus.ABSENT, str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Config file %s could not be parsed: %s", path, exc)
        return ConfigLoadResult(ConfigStatus.MALFORMED, str(path), error=str(exc))

    if not isinstance(data, dict):
        return ConfigLoadResult(ConfigStatus.MALFORMED, str(path), error="Config root must be an object")

    ok, error = validate_config_schema(data)
    if not ok:
        logger.warning("Config schema validation failed: %s", error)
        return ConfigLoadResult(ConfigStatus.INVALID, str(path), error=error)

    try:
        config = validate_config(data)
    except PydanticValidationError as exc:
        return ConfigLoadResult(ConfigStatus.INVALID, str(path), error=str(exc))

    missing = config.missing_tools()
    if missing:
        return ConfigLoadResult(
            ConfigStatus.INVALID,
            str(path),
            config=config,
            error="Required build tools not found: " + ", ".join(sorted(missing)),
            missing_tools=missing,
        )
    return ConfigLoadResult(ConfigStatus.OK, str(path), config=config)


def save_build_tools_config(config: BuildToolsConfig, config_path: Union[str, Path, None] = None) -> Path:
    path = Path(config_path) if config_path is not None else get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(), f, indent=2)
    logger.info("Saved build tools configuration to %s", path)
    return path
