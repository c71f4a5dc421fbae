#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
APK Patch - Consolidated Exception Classes

This module contains all exception classes used in the project,
centralized in one place to avoid duplication and improve consistency.
"""

from datetime import datetime
from typing import Dict, Any, Optional


class BaseError(Exception):
    """Base class for all project-specific errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code or "ERROR"
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Converts the exception to a dictionary for structured logging."""
        return {
            'error_code': self.error_code,
            'message': str(self),
            'details': self.details,
            'timestamp': self.timestamp.isoformat()
        }


# =====================================================================================================
# Configuration-related errors
# =====================================================================================================

class ConfigurationError(BaseError):
    """Raised when required build tools are missing or the configuration is unusable."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 file_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if file_path:
            config_details['file_path'] = str(file_path)
        super().__init__(message, error_code or "CONFIG_ERROR", config_details)


# =====================================================================================================
# Input errors
# =====================================================================================================

class InputNotFoundError(BaseError):
    """Raised when the source archive, the patch source or the native library root is missing."""

    def __init__(self, message: str, path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        input_details = details or {}
        if path:
            input_details['path'] = str(path)
        super().__init__(message, "INPUT_NOT_FOUND", input_details)


# =====================================================================================================
# Patch errors
# =====================================================================================================

class PatternDecodeError(BaseError):
    """Raised when a hex pattern of a descriptor cannot be decoded."""

    def __init__(self, message: str, pattern: Optional[str] = None,
                 error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        pattern_details = details or {}
        if pattern is not None:
            pattern_details['pattern'] = pattern
        super().__init__(message, error_code or "PATTERN_DECODE_ERROR", pattern_details)


class PatternLengthError(PatternDecodeError):
    """Raised when the replace pattern is not the same length as the find pattern."""

    def __init__(self, message: str, find_length: int, replace_length: int,
                 details: Optional[Dict[str, Any]] = None):
        length_details = details or {}
        length_details['find_length'] = find_length
        length_details['replace_length'] = replace_length
        super().__init__(message, None, "PATTERN_LENGTH_ERROR", length_details)


class BufferOverrunError(BaseError):
    """Raised when a patch write would leave the bounds of the payload buffer."""

    def __init__(self, message: str, offset: int, length: int, buffer_size: int,
                 details: Optional[Dict[str, Any]] = None):
        overrun_details = details or {}
        overrun_details.update({
            'offset': offset,
            'length': length,
            'buffer_size': buffer_size,
        })
        super().__init__(message, "BUFFER_OVERRUN", overrun_details)


# =====================================================================================================
# Archive and tool errors
# =====================================================================================================

class ArchiveIOError(BaseError):
    """Raised when reading the original archive or writing the rebuilt archive fails."""

    def __init__(self, message: str, archive_path: Optional[str] = None,
                 operation: Optional[str] = None,
                 error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        archive_details = details or {}
        if archive_path:
            archive_details['archive_path'] = str(archive_path)
        if operation:
            archive_details['operation'] = operation
        super().__init__(message, error_code or "ARCHIVE_IO_ERROR", archive_details)


class UnsafeArchiveMemberError(ArchiveIOError):
    """Raised when an archive member would be extracted outside the destination."""

    def __init__(self, message: str, member: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        member_details = details or {}
        if member:
            member_details['member'] = member
        super().__init__(message, None, "extract", "UNSAFE_ARCHIVE_MEMBER", member_details)


class ExternalToolError(BaseError):
    """Raised when an external align/sign process fails, times out or cannot be started."""

    def __init__(self, message: str, tool_name: str,
                 exit_code: Optional[int] = None,
                 timed_out: bool = False,
                 output: str = "",
                 details: Optional[Dict[str, Any]] = None):
        tool_details = details or {}
        tool_details['tool'] = tool_name
        if exit_code is not None:
            tool_details['exit_code'] = exit_code
        if timed_out:
            tool_details['timed_out'] = True
        super().__init__(message, "EXTERNAL_TOOL_ERROR", tool_details)
        self.tool_name = tool_name
        self.exit_code = exit_code
        self.timed_out = timed_out
        self.output = output
