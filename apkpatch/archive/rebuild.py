"""Archive Rebuilder.

Re-packs an extraction tree into a new archive. Each entry keeps the
stored/deflated choice recorded in the inventory of the original archive;
files unknown to the inventory are deflated. The output is written to a
``.part`` file first and moved into place only when complete.
"""

from __future__ import annotations

import logging
import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Union

from ..exceptions import ArchiveIOError
from ..security.security_utils import is_within_directory
from .inventory import ArchiveInventory

logger = logging.getLogger(__name__)

DEFAULT_COMPRESS_LEVEL = 9


@dataclass
class RebuildReport:
    """What ended up in the rebuilt archive."""

    output_path: str
    stored: List[str] = field(default_factory=list)
    deflated: List[str] = field(default_factory=list)
    new_entries: List[str] = field(default_factory=list)
    dropped_entries: List[str] = field(default_factory=list)

    @property
    def entry_count(self) -> int:
        return len(self.stored) + len(self.deflated)


def relative_entry_name(extracted_root: Union[str, Path], file_path: Union[str, Path]) -> str:
    """Archive path of ``file_path`` inside the tree rooted at ``extracted_root``.

    The path is taken relative to the root's parent, normalized to forward
    slashes, and the leading extraction-root segment is dropped, so a file
    extracted from entry ``E`` maps back to exactly ``E``.

    Raises:
        ArchiveIOError: if the file is not inside the extraction root
    """
    root = Path(extracted_root)
    path = Path(file_path)
    if not is_within_directory(path, root):
        raise ArchiveIOError(
            f"File {path} is outside the extraction root {root}",
            archive_path=str(path),
            operation="relative_path",
        )

    relative = path.resolve().relative_to(root.resolve().parent).as_posix()
    _, _, entry_name = relative.partition("/")
    if not entry_name:
        raise ArchiveIOError(
            f"Cannot derive an archive path for {path}",
            archive_path=str(path),
            operation="relative_path",
        )
    return entry_name


def collect_files(extracted_root: Union[str, Path], inventory: ArchiveInventory) -> List[Tuple[str, Path]]:
    """All files below the root as ``(entry_name, path)``.

    Entries known to the inventory come first in original archive order,
    followed by new files sorted by name.
    """
    root = Path(extracted_root)
    files: List[Tuple[str, Path]] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            files.append((relative_entry_name(root, path), path))

    def _order(item: Tuple[str, Path]) -> Tuple[int, int, str]:
        position = inventory.position(item[0])
        if position < 0:
            return (1, 0, item[0])
        return (0, position, item[0])

    files.sort(key=_order)
    return files


def rebuild_archive(
    extracted_root: Union[str, Path],
    inventory: ArchiveInventory,
    output_path: Union[str, Path],
    compress_level: int = DEFAULT_COMPRESS_LEVEL,
) -> RebuildReport:
    """Write every file under ``extracted_root`` into a new archive.

    Args:
        extracted_root: Extraction tree, possibly with patched payloads
        inventory: Inventory captured from the original archive
        output_path: Destination archive
        compress_level: Deflate level for non-stored entries

    Returns:
        RebuildReport

    Raises:
        ArchiveIOError: on any read/write failure; no partial output is left behind
    """
    root = Path(extracted_root)
    output = Path(output_path)
    if not root.is_dir():
        raise ArchiveIOError(
            f"Extraction root does not exist: {root}",
            archive_path=str(output),
            operation="rebuild",
        )

    report = RebuildReport(output_path=str(output))
    tmp = output.with_name(output.name + ".part")

    try:
        files = collect_files(root, inventory)
        output.parent.mkdir(parents=True, exist_ok=True)
        total = len(files)
        with zipfile.ZipFile(tmp, "w", strict_timestamps=False) as zf:
            for position, (entry_name, path) in enumerate(files, start=1):
                compress_type = inventory.compress_type_for(entry_name)
                if entry_name not in inventory:
                    report.new_entries.append(entry_name)
                    logger.info("New entry not in original archive, deflating: %s", entry_name)

                # ZipFile.write streams the file in chunks.
                zf.write(
                    path,
                    arcname=entry_name,
                    compress_type=compress_type,
                    compresslevel=compress_level if compress_type == zipfile.ZIP_DEFLATED else None,
                )
                if compress_type == zipfile.ZIP_STORED:
                    report.stored.append(entry_name)
                else:
                    report.deflated.append(entry_name)
                logger.debug("Packing %d/%d: %s", position, total, entry_name)

        os.replace(tmp, output)
    except ArchiveIOError:
        raise
    except (OSError, zipfile.BadZipFile, ValueError) as exc:
        raise ArchiveIOError(
            f"Failed to rebuild archive: {exc}",
            archive_path=str(output),
            operation="rebuild",
        ) from exc
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError as exc:
                logger.debug("Failed to remove temp file: %s", exc)

    written = {name for name in report.stored + report.deflated}
    report.dropped_entries = [name for name in inventory if name not in written]
    for name in report.dropped_entries:
        logger.debug("Entry removed from tree, omitted: %s", name)

    logger.info(
        "Rebuilt archive %s: %d entries (%d stored, %d deflated)",
        output.name,
        report.entry_count,
        len(report.stored),
        len(report.deflated),
    )
    return report
