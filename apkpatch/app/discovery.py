"""Locate the input archive and the patch document in a directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from defusedxml import ElementTree as ET
from defusedxml.common import DefusedXmlException

from ..patching.descriptors import YAML_SUFFIXES, load_descriptors
from .context import ALIGNED_NAME, PATCHED_NAME, SIGNED_NAME

logger = logging.getLogger(__name__)

PIPELINE_OUTPUTS = {PATCHED_NAME, ALIGNED_NAME, SIGNED_NAME}


def find_input_archive(directory: Union[str, Path]) -> Optional[Path]:
    """First ``*.apk`` in the directory that is not an output of a previous run."""
    for candidate in sorted(Path(directory).glob("*.apk")):
        if candidate.name.lower() not in PIPELINE_OUTPUTS and candidate.is_file():
            return candidate
    return None


def _is_patch_xml(path: Path) -> bool:
    try:
        root = ET.parse(str(path)).getroot()
    except (ET.ParseError, DefusedXmlException, OSError) as exc:
        logger.debug("Ignoring %s: %s", path.name, exc)
        return False
    return root.tag == "Patches" and root.find("Patch") is not None


def find_patch_source(directory: Union[str, Path]) -> Optional[Path]:
    """First patch document in the directory.

    XML files with a ``<Patches>`` root win over YAML documents; files with
    "config" in their name are never considered.
    """
    folder = Path(directory)
    for candidate in sorted(folder.glob("*.xml")):
        if "config" in candidate.name.lower():
            continue
        if _is_patch_xml(candidate):
            return candidate

    for candidate in sorted(p for p in folder.iterdir() if p.suffix.lower() in YAML_SUFFIXES):
        if "config" in candidate.name.lower():
            continue
        result = load_descriptors(candidate)
        if result.ok and len(result.descriptors):
            return candidate
        logger.debug("Ignoring %s: no usable patches", candidate.name)
    return None
