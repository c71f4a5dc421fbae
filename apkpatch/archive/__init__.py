"""Archive inventory, extraction and rebuild."""

from .inventory import ArchiveEntryRecord, ArchiveInventory, capture_inventory
from .extract import extract_archive
from .rebuild import RebuildReport, rebuild_archive, relative_entry_name

__all__ = [
    "ArchiveEntryRecord",
    "ArchiveInventory",
    "capture_inventory",
    "extract_archive",
    "RebuildReport",
    "rebuild_archive",
    "relative_entry_name",
]
