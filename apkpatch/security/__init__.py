"""Security helpers for archive handling."""

from .security_utils import is_safe_archive_member, is_within_directory, normalize_member_name

__all__ = ["is_safe_archive_member", "is_within_directory", "normalize_member_name"]
