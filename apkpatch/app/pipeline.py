"""Patch pipeline: inventory, extract, patch, rebuild, align, sign.

Strictly sequential. Fatal errors propagate as the typed exceptions from
``apkpatch.exceptions``; per-descriptor problems only show up in the walk
summary.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from ..archive.extract import extract_archive
from ..archive.inventory import capture_inventory
from ..archive.rebuild import RebuildReport, rebuild_archive
from ..exceptions import ConfigurationError, InputNotFoundError, PatternDecodeError
from ..logging_config import LoggingTimer
from ..patching.descriptors import DescriptorLoadResult, LoadStatus, load_descriptors
from ..patching.walker import ArchitectureWalker, WalkSummary
from ..security.security_utils import is_within_directory
from ..tools.build_tools import apksigner_command, find_keystore, zipalign_command
from ..tools.runner import run_external_tool
from .context import PatchContext

logger = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    final_path: Optional[Path] = None
    descriptors: Optional[DescriptorLoadResult] = None
    walk: Optional[WalkSummary] = None
    rebuild: Optional[RebuildReport] = None
    aligned: bool = False
    signed: bool = False
    success: bool = False


def validate_context(context: PatchContext) -> Optional[Tuple[Path, Path]]:
    """Fail before any mutation if required tools or signing inputs are missing.

    Returns:
        ``(keystore, password_file)`` when signing is enabled, else None
    """
    missing = context.config.missing_tools()
    if missing:
        raise ConfigurationError(
            "Required build tools not found: " + ", ".join(sorted(missing)),
            details={"missing": missing},
        )
    if context.config.sign_apk:
        return find_keystore(context.keystore_dir)
    return None


def check_input_not_output(context: PatchContext, archive: Path) -> None:
    """Refuse an input archive that the run would delete or overwrite.

    Raises:
        ConfigurationError: if ``archive`` is one of the pipeline's output paths
    """
    resolved = archive.resolve()
    for output in (context.patched_path, context.aligned_path, context.signed_path):
        if output.resolve() == resolved:
            raise ConfigurationError(
                f"Input archive {archive} is an output of the pipeline; rename or move it first",
                file_path=str(archive),
            )
    if is_within_directory(archive, context.extract_dir):
        raise ConfigurationError(
            f"Input archive {archive} lies inside the extraction directory {context.extract_dir}",
            file_path=str(archive),
        )


def clean_previous_outputs(context: PatchContext) -> None:
    """Remove artifacts left over from an earlier run."""
    stale = [
        context.patched_path,
        context.aligned_path,
        context.signed_path,
        context.signed_path.with_name(context.signed_path.name + ".idsig"),
    ]
    for path in stale:
        if path.is_file():
            logger.debug("Removing stale output %s", path.name)
            path.unlink()
    if context.extract_dir.exists():
        shutil.rmtree(context.extract_dir)


def load_patch_source(patch_source: Union[str, Path]) -> DescriptorLoadResult:
    result = load_descriptors(patch_source)
    if result.status == LoadStatus.MISSING:
        raise InputNotFoundError("No patch file found", path=str(patch_source))
    if result.status == LoadStatus.MALFORMED:
        raise PatternDecodeError(f"Patch file could not be parsed: {result.error}", pattern=None)
    return result


def run_pipeline(
    context: PatchContext,
    archive_path: Union[str, Path],
    patch_source: Union[str, Path],
) -> PipelineReport:
    """Patch the native libraries of ``archive_path`` and produce the final archive.

    Raises:
        ConfigurationError, InputNotFoundError, PatternDecodeError,
        ArchiveIOError, ExternalToolError
    """
    config = context.config
    report = PipelineReport()

    signing_inputs = validate_context(context)

    archive = Path(archive_path)
    if not archive.is_file():
        raise InputNotFoundError("No APK file found", path=str(archive))
    check_input_not_output(context, archive)

    clean_previous_outputs(context)
    report.descriptors = load_patch_source(patch_source)

    with LoggingTimer("inventory"):
        inventory = capture_inventory(archive)

    with LoggingTimer("extract"):
        extract_archive(archive, context.extract_dir)

    walker = ArchitectureWalker(config.native_lib_dir, config.payload_name)
    with LoggingTimer("patch"):
        report.walk = walker.run(context.extract_dir, report.descriptors.descriptors)
    if report.walk.usable_count == 0:
        raise InputNotFoundError(
            f"No architecture contains {config.payload_name}",
            path=str(walker.native_root(context.extract_dir)),
        )

    logger.info("Repacking APK...")
    with LoggingTimer("rebuild"):
        report.rebuild = rebuild_archive(
            context.extract_dir,
            inventory,
            context.patched_path,
            compress_level=config.compress_level,
        )
    logger.info("Patched APK created: %s", context.patched_path)
    current = context.patched_path

    if config.align_apk:
        run_external_tool(
            zipalign_command(config.zipalign_path, current, context.aligned_path),
            "zipalign",
            timeout_sec=config.tool_timeout_sec,
            log_dir=context.tool_log_dir,
        )
        report.aligned = True
        current = context.aligned_path

    if config.sign_apk and signing_inputs is not None:
        keystore, password_file = signing_inputs
        logger.info("Signing APK...")
        run_external_tool(
            apksigner_command(
                config.apksigner_path,
                keystore,
                password_file,
                config.key_alias,
                current,
                context.signed_path,
                java=config.java_path,
            ),
            "apksigner",
            timeout_sec=config.tool_timeout_sec,
            log_dir=context.tool_log_dir,
        )
        report.signed = True
        current = context.signed_path

    report.final_path = current
    _remove_intermediates(context, current)
    report.success = True

    kind = "signed" if report.signed else "aligned" if report.aligned else "patched"
    logger.info("Successfully created %s APK: %s", kind, current)
    return report


def _remove_intermediates(context: PatchContext, final_path: Path) -> None:
    for path in (context.patched_path, context.aligned_path):
        if path != final_path and path.is_file():
            path.unlink()
    if context.extract_dir.exists():
        shutil.rmtree(context.extract_dir)
