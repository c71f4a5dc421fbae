#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""APK Patch - Safety validation. This module contains functions for the safe validation of archive members and paths to prevent directory traversal while extracting."""

import re
import logging
import stat
from pathlib import Path, PurePosixPath
from typing import Union
import zipfile

logger = logging.getLogger(__name__)


def normalize_member_name(name: str) -> str:
    """Return an archive path with forward slashes only."""
    return str(name or "").replace("\\", "/")


def is_safe_archive_member(member: Union[str, zipfile.ZipInfo]) -> bool:
    """Check for safe archive members (no traversal, no abs paths, no symlinks)."""
    if isinstance(member, zipfile.ZipInfo):
        member_name = member.filename
        mode = stat.S_IFMT(member.external_attr >> 16)
        if mode == stat.S_IFLNK:
            return False
    else:
        member_name = str(member)

    if not member_name:
        return False
    if "\x00" in member_name:
        return False
    if member_name.startswith(('/', '\\')):
        return False
    if re.match(r"^[a-zA-Z]:", member_name):
        return False
    parts = PurePosixPath(normalize_member_name(member_name)).parts
    return ".." not in parts


def is_within_directory(target: Union[str, Path], parent: Union[str, Path]) -> bool:
    """True if ``target`` resolves to ``parent`` or a path below it."""
    try:
        Path(target).resolve().relative_to(Path(parent).resolve())
        return True
    except ValueError:
        return False
