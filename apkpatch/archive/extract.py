"""Zip-slip safe extraction of the source archive."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path
from typing import Union

from ..exceptions import ArchiveIOError, UnsafeArchiveMemberError
from ..security.security_utils import is_safe_archive_member, is_within_directory

logger = logging.getLogger(__name__)


def extract_archive(archive_path: Union[str, Path], dest_dir: Union[str, Path]) -> int:
    """Extract every file entry of ``archive_path`` into a fresh ``dest_dir``.

    Every member is validated before anything is written.

    Returns:
        Number of files extracted

    Raises:
        UnsafeArchiveMemberError: for absolute, traversing or symlink members
        ArchiveIOError: if the archive cannot be read or a file cannot be written
    """
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)

    if dest_dir.exists():
        shutil.rmtree(dest_dir)
    dest_dir.mkdir(parents=True)
    dest_root = dest_dir.resolve()

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()
            for member in members:
                if not is_safe_archive_member(member):
                    raise UnsafeArchiveMemberError(
                        f"Unsafe archive member blocked: {member.filename}",
                        member=member.filename,
                    )
                if not is_within_directory(dest_root / member.filename, dest_root):
                    raise UnsafeArchiveMemberError(
                        f"Zip-slip detected: {member.filename}",
                        member=member.filename,
                    )

            total = len(members)
            extracted = 0
            for position, member in enumerate(members, start=1):
                if member.is_dir():
                    continue
                zf.extract(member, dest_root)
                extracted += 1
                logger.debug("Extracting %d/%d: %s", position, total, member.filename)
    except UnsafeArchiveMemberError:
        raise
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveIOError(
            f"Failed to extract archive: {exc}",
            archive_path=str(archive_path),
            operation="extract",
        ) from exc

    logger.info("Extracted %d files to %s", extracted, dest_dir)
    return extracted
