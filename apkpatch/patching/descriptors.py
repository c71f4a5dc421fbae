"""Patch descriptor sets.

A descriptor is a single find/replace rule scoped to one architecture. Sets are
read once from a declarative document (XML, YAML or JSON), keep document order,
and are grouped by architecture for the walker.

XML layout::

    <Patches>
      <Patch arch="arm64-v8a">
        <Find>AA BB CC</Find>
        <Replace>11 22 33</Replace>
        <Description>Skip licence check</Description>
      </Patch>
    </Patches>

YAML/JSON layout is either a list of mappings or a mapping with a ``patches``
list, using the keys ``architecture`` (or ``arch``), ``find``, ``replace`` and
``description``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import yaml
from defusedxml import ElementTree as ET
from defusedxml.common import DefusedXmlException

from ..exceptions import PatternDecodeError, PatternLengthError
from .patterns import BytePattern

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "No description"
YAML_SUFFIXES = (".yaml", ".yml")


@dataclass(frozen=True)
class PatchDescriptor:
    """A find/replace rule for one architecture."""

    architecture: str
    find: BytePattern
    replace: BytePattern
    label: str = DEFAULT_DESCRIPTION

    @property
    def length_matches(self) -> bool:
        return len(self.find) == len(self.replace)

    def validate_lengths(self) -> None:
        if not self.length_matches:
            raise PatternLengthError(
                f"Replace pattern is {len(self.replace)} bytes but find pattern is "
                f"{len(self.find)} bytes ({self.label})",
                find_length=len(self.find),
                replace_length=len(self.replace),
            )

    @classmethod
    def from_hex(
        cls,
        architecture: str,
        find: str,
        replace: str,
        label: Optional[str] = None,
    ) -> "PatchDescriptor":
        """Build a descriptor from hex strings.

        Raises:
            PatternDecodeError: if either pattern is malformed or the lengths differ
        """
        descriptor = cls(
            architecture=str(architecture).strip(),
            find=BytePattern.from_hex(find),
            replace=BytePattern.from_hex(replace),
            label=(label or "").strip() or DEFAULT_DESCRIPTION,
        )
        descriptor.validate_lengths()
        return descriptor


class DescriptorSet:
    """Ordered descriptors grouped by architecture."""

    def __init__(self, descriptors: Iterable[PatchDescriptor] = ()):
        self._descriptors: Tuple[PatchDescriptor, ...] = tuple(descriptors)
        grouped: Dict[str, List[PatchDescriptor]] = {}
        for descriptor in self._descriptors:
            grouped.setdefault(descriptor.architecture, []).append(descriptor)
        self._by_arch: Dict[str, Tuple[PatchDescriptor, ...]] = {
            arch: tuple(items) for arch, items in grouped.items()
        }

    def __iter__(self) -> Iterator[PatchDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, architecture: object) -> bool:
        return architecture in self._by_arch

    @property
    def architectures(self) -> List[str]:
        return list(self._by_arch)

    def for_architecture(self, architecture: str) -> Tuple[PatchDescriptor, ...]:
        return self._by_arch.get(architecture, ())

    def as_mapping(self) -> Dict[str, Tuple[PatchDescriptor, ...]]:
        return dict(self._by_arch)


class LoadStatus(Enum):
    """Outcome of reading a descriptor document."""

    OK = "ok"
    MISSING = "missing"
    MALFORMED = "malformed"


@dataclass
class DescriptorIssue:
    """A descriptor that was skipped while loading."""

    index: int
    architecture: Optional[str]
    message: str
    error: Optional[PatternDecodeError] = None


@dataclass
class DescriptorLoadResult:
    """Typed result of :func:`load_descriptors`."""

    status: LoadStatus
    source: str
    descriptors: DescriptorSet = field(default_factory=DescriptorSet)
    issues: List[DescriptorIssue] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == LoadStatus.OK


def _xml_text(element: Any, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    return child.text


def _records_from_xml(raw: str) -> List[Dict[str, Optional[str]]]:
    root = ET.fromstring(raw)
    if root.tag != "Patches":
        raise ValueError(f"Unexpected root element <{root.tag}>, expected <Patches>")
    records = []
    for patch in root.iter("Patch"):
        records.append({
            "architecture": patch.get("arch"),
            "find": _xml_text(patch, "Find"),
            "replace": _xml_text(patch, "Replace"),
            "description": _xml_text(patch, "Description"),
        })
    return records


def _records_from_mapping_document(data: Any) -> List[Dict[str, Any]]:
    """Raw records; find/replace keep their parsed type so unquoted numbers can be rejected."""
    if isinstance(data, dict):
        data = data.get("patches")
    if not isinstance(data, list):
        raise ValueError("Expected a list of patches or a mapping with a 'patches' list")

    records = []
    for item in data:
        if not isinstance(item, dict):
            records.append({"architecture": None, "find": None, "replace": None, "description": None})
            continue
        arch = item.get("architecture", item.get("arch"))
        records.append({
            "architecture": None if arch is None else str(arch),
            "find": item.get("find"),
            "replace": item.get("replace"),
            "description": None if item.get("description") is None else str(item.get("description")),
        })
    return records


def parse_descriptor_records(
    records: List[Dict[str, Any]],
) -> Tuple[List[PatchDescriptor], List[DescriptorIssue]]:
    """Turn raw records into descriptors, skipping and recording bad ones."""
    descriptors: List[PatchDescriptor] = []
    issues: List[DescriptorIssue] = []

    for index, record in enumerate(records):
        arch = (record.get("architecture") or "").strip() or None
        find = record.get("find")
        replace = record.get("replace")

        if not arch:
            issues.append(DescriptorIssue(index, None, "Patch has no architecture"))
            continue
        non_text = [
            name for name, value in (("find", find), ("replace", replace))
            if value is not None and not isinstance(value, str)
        ]
        if non_text:
            issues.append(DescriptorIssue(
                index,
                arch,
                f"{' and '.join(non_text)} pattern must be a quoted string",
            ))
            continue
        if not (find or "").strip() or not (replace or "").strip():
            issues.append(DescriptorIssue(index, arch, "Patch is missing its find or replace pattern"))
            continue

        try:
            descriptors.append(
                PatchDescriptor.from_hex(arch, find, replace, record.get("description"))
            )
        except PatternDecodeError as exc:
            issues.append(DescriptorIssue(index, arch, str(exc), exc))

    return descriptors, issues


def load_descriptors(path: Union[str, Path]) -> DescriptorLoadResult:
    """Load a descriptor document.

    Malformed descriptors are skipped and reported in ``issues``; only an absent
    or unparseable document changes the result status.

    Args:
        path: XML, YAML or JSON document

    Returns:
        DescriptorLoadResult
    """
    source = Path(path)
    if not source.is_file():
        return DescriptorLoadResult(LoadStatus.MISSING, str(source), error="Patch source not found")

    try:
        raw = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return DescriptorLoadResult(LoadStatus.MALFORMED, str(source), error=str(exc))

    suffix = source.suffix.lower()
    try:
        if suffix == ".json":
            records = _records_from_mapping_document(json.loads(raw))
        elif suffix in YAML_SUFFIXES:
            records = _records_from_mapping_document(yaml.safe_load(raw))
        else:
            records = _records_from_xml(raw)
    except (ET.ParseError, DefusedXmlException, yaml.YAMLError, json.JSONDecodeError, ValueError) as exc:
        return DescriptorLoadResult(LoadStatus.MALFORMED, str(source), error=str(exc))

    descriptors, issues = parse_descriptor_records(records)
    for issue in issues:
        logger.warning(
            "Skipping patch #%d (%s): %s",
            issue.index + 1,
            issue.architecture or "no architecture",
            issue.message,
        )
    logger.info("Loaded %d patch(es) from %s", len(descriptors), source.name)

    return DescriptorLoadResult(
        LoadStatus.OK,
        str(source),
        descriptors=DescriptorSet(descriptors),
        issues=issues,
    )
