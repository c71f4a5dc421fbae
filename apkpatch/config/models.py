from __future__ import annotations

import os
from typing import Any, Dict, Optional, cast

from pydantic import BaseModel, ConfigDict, Field


class _BaseConfigModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class BuildToolsConfig(_BaseConfigModel):
    build_tools_version: Optional[str] = None
    zipalign_path: Optional[str] = None
    apksigner_path: Optional[str] = None
    java_path: str = "java"
    align_apk: bool = True
    sign_apk: bool = True
    enable_debug_output: bool = False
    keystore_dir: str = "keystore"
    key_alias: str = "android"
    tool_timeout_sec: float = Field(default=300.0, gt=0)
    native_lib_dir: str = "lib"
    payload_name: str = "libil2cpp.so"
    compress_level: int = Field(default=9, ge=0, le=9)
    work_dir_name: str = "temp_apk"

    @property
    def is_valid(self) -> bool:
        return not self.missing_tools()

    def missing_tools(self) -> Dict[str, Optional[str]]:
        """Tools that are required by the enabled steps but absent on disk."""
        missing: Dict[str, Optional[str]] = {}
        if self.align_apk and not _is_file(self.zipalign_path):
            missing["zipalign_path"] = self.zipalign_path
        if self.sign_apk and not _is_file(self.apksigner_path):
            missing["apksigner_path"] = self.apksigner_path
        return missing


def _is_file(path: Optional[str]) -> bool:
    return bool(path) and os.path.isfile(str(path))


def validate_config(payload: Dict[str, Any]) -> BuildToolsConfig:
    return cast(BuildToolsConfig, BuildToolsConfig.model_validate(payload))
