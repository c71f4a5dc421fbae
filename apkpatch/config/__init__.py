#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""APK Patch - Configuration Package. Build tool locations and pipeline switches, loaded from a JSON file and validated with jsonschema and pydantic."""

import logging

logger = logging.getLogger(__name__)

from .models import BuildToolsConfig, validate_config  # noqa: E402
from .io import (  # noqa: E402
    ConfigLoadResult,
    ConfigStatus,
    get_config_path,
    load_build_tools_config,
    save_build_tools_config,
)
from .schema import validate_config_schema  # noqa: E402

__all__ = [
    'BuildToolsConfig',
    'ConfigLoadResult',
    'ConfigStatus',
    'get_config_path',
    'load_build_tools_config',
    'save_build_tools_config',
    'validate_config',
    'validate_config_schema',
]
