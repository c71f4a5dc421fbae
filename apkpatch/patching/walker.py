"""Architecture Walker.

Enumerates ``<extracted>/<native_lib_dir>/<arch>/`` directories, loads the
payload of each architecture, runs the Payload Patcher with that
architecture's descriptors and writes the buffer back once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from ..exceptions import ArchiveIOError, InputNotFoundError
from .descriptors import DescriptorSet, PatchDescriptor
from .patcher import PatchApplicationResult, PayloadPatcher

logger = logging.getLogger(__name__)

DEFAULT_NATIVE_LIB_DIR = "lib"
DEFAULT_PAYLOAD_NAME = "libil2cpp.so"


class ArchitectureStatus(Enum):
    PATCHED = "patched"
    NO_PATCHES = "no patches found"
    PAYLOAD_MISSING = "payload missing"


@dataclass
class ArchitectureReport:
    """Outcome for one architecture directory."""

    architecture: str
    status: ArchitectureStatus
    payload_path: Optional[Path] = None
    results: List[PatchApplicationResult] = field(default_factory=list)
    written: bool = False

    @property
    def applied_count(self) -> int:
        return sum(1 for result in self.results if result.applied)

    @property
    def missed_count(self) -> int:
        return sum(1 for result in self.results if result.missed)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if result.failed)

    @property
    def usable(self) -> bool:
        return self.status != ArchitectureStatus.PAYLOAD_MISSING


@dataclass
class WalkSummary:
    """Per-architecture reports of one walk."""

    reports: List[ArchitectureReport] = field(default_factory=list)

    @property
    def architectures(self) -> List[str]:
        return [report.architecture for report in self.reports]

    @property
    def usable_count(self) -> int:
        return sum(1 for report in self.reports if report.usable)

    @property
    def applied_count(self) -> int:
        return sum(report.applied_count for report in self.reports)

    def get(self, architecture: str) -> Optional[ArchitectureReport]:
        for report in self.reports:
            if report.architecture == architecture:
                return report
        return None


DescriptorSource = Union[DescriptorSet, Mapping[str, Sequence[PatchDescriptor]]]


class ArchitectureWalker:
    """Drives the Payload Patcher over every architecture of an extracted archive.

    Args:
        native_lib_dir: Directory below the extraction root holding one folder per architecture
        payload_name: File name of the payload inside each architecture folder
        patcher: Patcher to use (a default PayloadPatcher when omitted)
    """

    def __init__(
        self,
        native_lib_dir: str = DEFAULT_NATIVE_LIB_DIR,
        payload_name: str = DEFAULT_PAYLOAD_NAME,
        patcher: Optional[PayloadPatcher] = None,
    ):
        self.native_lib_dir = native_lib_dir
        self.payload_name = payload_name
        self.patcher = patcher or PayloadPatcher()

    def native_root(self, extracted_root: Union[str, Path]) -> Path:
        return Path(extracted_root) / self.native_lib_dir

    def list_architectures(self, extracted_root: Union[str, Path]) -> List[str]:
        """Names of the immediate subdirectories of the native library root, sorted.

        Raises:
            InputNotFoundError: if the native library root does not exist
        """
        lib_root = self.native_root(extracted_root)
        if not lib_root.is_dir():
            raise InputNotFoundError(
                f"No {self.native_lib_dir} folder found in archive, not an IL2CPP app?",
                path=str(lib_root),
            )
        return sorted(entry.name for entry in lib_root.iterdir() if entry.is_dir())

    def run(self, extracted_root: Union[str, Path], descriptors: DescriptorSource) -> WalkSummary:
        """Patch every architecture found under ``extracted_root``.

        Missing payloads and architectures without descriptors are reported,
        never raised.
        """
        by_arch = self._group(descriptors)
        architectures = self.list_architectures(extracted_root)
        logger.info("Detected architectures: %s", ", ".join(architectures) or "none")

        summary = WalkSummary()
        for arch in architectures:
            report = self.patch_architecture(extracted_root, arch, by_arch.get(arch, ()))
            summary.reports.append(report)
        return summary

    def patch_architecture(
        self,
        extracted_root: Union[str, Path],
        architecture: str,
        descriptors: Sequence[PatchDescriptor],
    ) -> ArchitectureReport:
        payload_path = self.native_root(extracted_root) / architecture / self.payload_name
        if not payload_path.is_file():
            logger.warning("%s not found for %s, skipping...", self.payload_name, architecture)
            return ArchitectureReport(architecture, ArchitectureStatus.PAYLOAD_MISSING)

        if not descriptors:
            logger.warning("No patches found for %s", architecture)
            return ArchitectureReport(architecture, ArchitectureStatus.NO_PATCHES, payload_path)

        logger.info("Processing %s library (%d patch(es))...", architecture, len(descriptors))
        try:
            with open(payload_path, "rb") as f:
                buffer = bytearray(f.read())
        except OSError as exc:
            raise ArchiveIOError(
                f"Failed to read payload {payload_path}: {exc}",
                archive_path=str(payload_path),
                operation="read_payload",
            ) from exc

        results = self.patcher.apply(buffer, descriptors)

        try:
            with open(payload_path, "wb") as f:
                f.write(buffer)
        except OSError as exc:
            raise ArchiveIOError(
                f"Failed to write payload {payload_path}: {exc}",
                archive_path=str(payload_path),
                operation="write_payload",
            ) from exc

        report = ArchitectureReport(
            architecture,
            ArchitectureStatus.PATCHED,
            payload_path,
            results=results,
            written=True,
        )
        logger.info(
            "%s: %d applied, %d not found, %d failed",
            architecture,
            report.applied_count,
            report.missed_count,
            report.failed_count,
        )
        return report

    @staticmethod
    def _group(descriptors: DescriptorSource) -> Dict[str, Sequence[PatchDescriptor]]:
        if isinstance(descriptors, DescriptorSet):
            return descriptors.as_mapping()
        return dict(descriptors)
