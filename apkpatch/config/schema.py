"""Config schema validation helpers."""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional, Tuple

import jsonschema

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "build_tools_version": {"type": ["string", "null"]},
        "zipalign_path": {"type": ["string", "null"]},
        "apksigner_path": {"type": ["string", "null"]},
        "java_path": {"type": "string", "minLength": 1},
        "align_apk": {"type": "boolean"},
        "sign_apk": {"type": "boolean"},
        "enable_debug_output": {"type": "boolean"},
        "keystore_dir": {"type": "string"},
        "key_alias": {"type": "string", "minLength": 1},
        "tool_timeout_sec": {"type": "number", "exclusiveMinimum": 0},
        "native_lib_dir": {"type": "string", "minLength": 1},
        "payload_name": {"type": "string", "minLength": 1},
        "compress_level": {"type": "integer", "minimum": 0, "maximum": 9},
        "work_dir_name": {"type": "string", "minLength": 1},
    },
}


def validate_config_schema(config_data: Dict[str, Any], schema_path: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    schema = CONFIG_SCHEMA
    if schema_path is not None and os.path.exists(schema_path):
        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

    try:
        jsonschema.validate(instance=config_data, schema=schema)
        return True, None
    except jsonschema.ValidationError as exc:
        return False, exc.message
