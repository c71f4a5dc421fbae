"""External build tool integration (zipalign, apksigner)."""

from .runner import ToolResult, run_external_tool
from .build_tools import (
    apksigner_command,
    discover_build_tools,
    find_keystore,
    find_sdk_root,
    list_build_tools_versions,
    zipalign_command,
)

__all__ = [
    "ToolResult",
    "run_external_tool",
    "apksigner_command",
    "discover_build_tools",
    "find_keystore",
    "find_sdk_root",
    "list_build_tools_versions",
    "zipalign_command",
]
