"""Android build tools: SDK discovery, keystore lookup and command lines."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..config.models import BuildToolsConfig
from ..exceptions import ConfigurationError, InputNotFoundError

logger = logging.getLogger(__name__)

ZIPALIGN_NAMES = ("zipalign", "zipalign.exe")
APKSIGNER_JAR = "apksigner.jar"
KEYSTORE_PATTERNS = ("*.keystore", "*.jks")

PathLike = Union[str, Path]


def find_sdk_root() -> Optional[Path]:
    """Locate the Android SDK from the environment or the default Windows location."""
    for var in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        value = os.environ.get(var)
        if value:
            return Path(value)

    local_app_data = os.environ.get("LOCALAPPDATA")
    if local_app_data:
        candidate = Path(local_app_data) / "Android" / "Sdk"
        if candidate.is_dir():
            logger.info("Found Android SDK at: %s", candidate)
            return candidate
    return None


def list_build_tools_versions(sdk_root: PathLike) -> List[str]:
    """Installed build-tools versions, newest first."""
    build_tools = Path(sdk_root) / "build-tools"
    if not build_tools.is_dir():
        raise ConfigurationError(
            "Build tools directory not found in SDK",
            file_path=str(build_tools),
        )
    return sorted((entry.name for entry in build_tools.iterdir() if entry.is_dir()), reverse=True)


def _find_first(root: Path, names: Tuple[str, ...]) -> Optional[Path]:
    for name in names:
        for match in sorted(root.rglob(name)):
            if match.is_file():
                return match
    return None


def discover_build_tools(
    sdk_root: Optional[PathLike] = None,
    version: Optional[str] = None,
    base: Optional[BuildToolsConfig] = None,
) -> BuildToolsConfig:
    """Build a configuration pointing at zipalign and apksigner of one build-tools version.

    Args:
        sdk_root: Android SDK root (detected from the environment when omitted)
        version: Build-tools version to use (newest when omitted)
        base: Existing settings to carry over

    Raises:
        ConfigurationError: if the SDK, the version or the tools cannot be found
    """
    root = Path(sdk_root) if sdk_root else find_sdk_root()
    if root is None:
        raise ConfigurationError("Android SDK not found. Set ANDROID_HOME environment variable.")

    versions = list_build_tools_versions(root)
    if not versions:
        raise ConfigurationError("No build tools versions found", file_path=str(root / "build-tools"))
    logger.info("Available build tools versions: %s", ", ".join(versions))

    selected = version or versions[0]
    if selected not in versions:
        raise ConfigurationError(
            f"Build tools version {selected} is not installed",
            details={"available": versions},
        )

    selected_path = root / "build-tools" / selected
    zipalign = _find_first(selected_path, ZIPALIGN_NAMES)
    apksigner = _find_first(selected_path, (APKSIGNER_JAR,))

    settings = base.model_dump() if base is not None else {}
    settings.update({
        "build_tools_version": selected,
        "zipalign_path": str(zipalign) if zipalign else None,
        "apksigner_path": str(apksigner) if apksigner else None,
    })
    config = BuildToolsConfig.model_validate(settings)

    missing = config.missing_tools()
    if missing:
        raise ConfigurationError(
            f"Required build tools not found in {selected_path}",
            file_path=str(selected_path),
            details={"missing": sorted(missing)},
        )
    return config


def find_keystore(keystore_dir: PathLike) -> Tuple[Path, Path]:
    """Return ``(keystore, password_file)`` from the keystore directory.

    Raises:
        InputNotFoundError: if the directory, the keystore or the password file is missing
    """
    folder = Path(keystore_dir)
    if not folder.is_dir():
        raise InputNotFoundError("Keystore folder does not exist", path=str(folder))

    keystore = None
    for pattern in KEYSTORE_PATTERNS:
        matches = sorted(folder.glob(pattern))
        if matches:
            keystore = matches[0]
            break
    passwords = sorted(folder.glob("*.txt"))

    if keystore is None or not passwords:
        raise InputNotFoundError(
            "Keystore (.keystore) or password (.txt) file not found in the folder",
            path=str(folder),
        )
    return keystore, passwords[0]


def zipalign_command(zipalign: PathLike, src: PathLike, dst: PathLike, alignment: int = 4) -> List[str]:
    return [str(zipalign), "-f", "-v", str(alignment), str(src), str(dst)]


def apksigner_command(
    apksigner: PathLike,
    keystore: PathLike,
    password_file: PathLike,
    key_alias: str,
    src: PathLike,
    dst: PathLike,
    java: str = "java",
) -> List[str]:
    """Command line for ``apksigner sign``; ``.jar`` builds run through java."""
    if str(apksigner).lower().endswith(".jar"):
        prefix = [java, "-jar", str(apksigner)]
    else:
        prefix = [str(apksigner)]
    return prefix + [
        "sign",
        "--ks", str(keystore),
        "--ks-key-alias", key_alias,
        "--ks-pass", f"file:{password_file}",
        "--out", str(dst),
        str(src),
    ]
