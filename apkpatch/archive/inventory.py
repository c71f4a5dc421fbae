"""Archive Inventory.

Captures, once and before anything in the extraction tree changes, which
entries of the original archive are stored uncompressed. The rebuild consults
this mapping read-only.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Union

from ..exceptions import ArchiveIOError
from ..security.security_utils import normalize_member_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntryRecord:
    relative_path: str
    compression_stored: bool


class ArchiveInventory(Mapping):
    """Read-only mapping of entry path -> ``True`` if the entry is stored.

    Iteration follows the entry order of the original archive.
    """

    def __init__(self, records: Iterable[ArchiveEntryRecord] = (), source: str = ""):
        self._stored: Dict[str, bool] = {}
        for record in records:
            self._stored[record.relative_path] = record.compression_stored
        self._order = {name: index for index, name in enumerate(self._stored)}
        self.source = source

    def __getitem__(self, key: str) -> bool:
        return self._stored[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._stored)

    def __len__(self) -> int:
        return len(self._stored)

    def is_stored(self, relative_path: str) -> bool:
        """True only for entries recorded as stored; unknown entries are compressed."""
        return self._stored.get(relative_path, False)

    def compress_type_for(self, relative_path: str) -> int:
        return zipfile.ZIP_STORED if self.is_stored(relative_path) else zipfile.ZIP_DEFLATED

    def position(self, relative_path: str) -> int:
        """Index of the entry in the original archive, or -1 for unknown entries."""
        return self._order.get(relative_path, -1)

    @property
    def records(self) -> List[ArchiveEntryRecord]:
        return [ArchiveEntryRecord(name, stored) for name, stored in self._stored.items()]

    @property
    def stored_paths(self) -> List[str]:
        return [name for name, stored in self._stored.items() if stored]


def capture_inventory(archive_path: Union[str, Path]) -> ArchiveInventory:
    """Record every non-directory entry and whether it is stored uncompressed.

    Raises:
        ArchiveIOError: if the archive cannot be opened or read
    """
    path = Path(archive_path)
    try:
        with zipfile.ZipFile(path, "r") as zf:
            records = [
                ArchiveEntryRecord(
                    normalize_member_name(info.filename),
                    info.compress_type == zipfile.ZIP_STORED,
                )
                for info in zf.infolist()
                if not info.is_dir()
            ]
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveIOError(
            f"Failed to read archive inventory: {exc}",
            archive_path=str(path),
            operation="inventory",
        ) from exc

    inventory = ArchiveInventory(records, source=str(path))
    logger.info(
        "Captured inventory of %d entries (%d stored) from %s",
        len(inventory),
        len(inventory.stored_paths),
        path.name,
    )
    return inventory
