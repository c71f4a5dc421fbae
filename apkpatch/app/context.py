"""Explicit per-run context passed through the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config.models import BuildToolsConfig

PATCHED_NAME = "patched.apk"
ALIGNED_NAME = "aligned.apk"
SIGNED_NAME = "signed.apk"


@dataclass
class PatchContext:
    """Configuration and locations for one pipeline run.

    Built once at startup; nothing in the pipeline reads process-wide state.
    """

    config: BuildToolsConfig
    work_dir: Path
    log_dir: Optional[Path] = None
    debug: bool = False

    def __post_init__(self) -> None:
        self.work_dir = Path(self.work_dir)
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir)

    @property
    def extract_dir(self) -> Path:
        return self.work_dir / self.config.work_dir_name

    @property
    def patched_path(self) -> Path:
        return self.work_dir / PATCHED_NAME

    @property
    def aligned_path(self) -> Path:
        return self.work_dir / ALIGNED_NAME

    @property
    def signed_path(self) -> Path:
        return self.work_dir / SIGNED_NAME

    @property
    def keystore_dir(self) -> Path:
        keystore = Path(self.config.keystore_dir)
        return keystore if keystore.is_absolute() else self.work_dir / keystore

    @property
    def tool_log_dir(self) -> Optional[Path]:
        """Where tool output is captured; only when debug output is enabled."""
        if not (self.debug or self.config.enable_debug_output):
            return None
        return self.log_dir or self.work_dir / "logs"
