"""Payload Patcher.

Applies an ordered descriptor list to one in-memory native library. Each
descriptor patches at most one site: the first occurrence of its find pattern in
the buffer as left by the descriptors before it. The buffer is never resized.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..exceptions import BaseError, BufferOverrunError, PatternLengthError
from .descriptors import PatchDescriptor
from .hexdump import format_hex_dump
from .patterns import find_pattern

logger = logging.getLogger(__name__)


@dataclass
class PatchApplicationResult:
    """Outcome of one descriptor against one payload."""

    descriptor: PatchDescriptor
    offset_found: Optional[int] = None
    applied: bool = False
    error: Optional[BaseError] = None

    @property
    def missed(self) -> bool:
        """True when the find pattern simply was not present."""
        return not self.applied and self.error is None

    @property
    def failed(self) -> bool:
        return self.error is not None


def write_within_bounds(buffer: bytearray, offset: int, data: bytes) -> None:
    """Overwrite ``buffer[offset:offset + len(data)]`` without resizing.

    Raises:
        BufferOverrunError: if any byte would land outside the buffer
    """
    end = offset + len(data)
    if offset < 0 or end > len(buffer):
        raise BufferOverrunError(
            f"Write of {len(data)} bytes at 0x{offset:X} exceeds buffer of {len(buffer)} bytes",
            offset=offset,
            length=len(data),
            buffer_size=len(buffer),
        )
    buffer[offset:end] = data


class PayloadPatcher:
    """Applies descriptor sets to payload buffers.

    Args:
        hex_context: Bytes of context shown around each patch in debug hex dumps
    """

    def __init__(self, hex_context: int = 8):
        self.hex_context = hex_context

    def apply(
        self,
        buffer: bytearray,
        descriptors: Iterable[PatchDescriptor],
    ) -> List[PatchApplicationResult]:
        """Apply ``descriptors`` to ``buffer`` in order, mutating it in place.

        A missing pattern is reported, not raised. Length mismatches and
        out-of-bounds writes fail only the descriptor concerned.

        Returns:
            One PatchApplicationResult per descriptor, in input order
        """
        if not isinstance(buffer, bytearray):
            raise TypeError("PayloadPatcher.apply requires a mutable bytearray")

        results: List[PatchApplicationResult] = []
        for descriptor in descriptors:
            results.append(self.apply_one(buffer, descriptor))
        return results

    def apply_one(self, buffer: bytearray, descriptor: PatchDescriptor) -> PatchApplicationResult:
        if not descriptor.length_matches:
            error = PatternLengthError(
                f"Refusing to apply '{descriptor.label}': replace is {len(descriptor.replace)} bytes, "
                f"find is {len(descriptor.find)} bytes",
                find_length=len(descriptor.find),
                replace_length=len(descriptor.replace),
            )
            logger.error("%s", error)
            return PatchApplicationResult(descriptor, error=error)

        offset = find_pattern(buffer, descriptor.find.data)
        if offset is None:
            logger.info("Signature not found, skipping patch: %s", descriptor.label)
            return PatchApplicationResult(descriptor)

        logger.info("Found signature at offset 0x%X, applying patch: %s", offset, descriptor.label)
        self._log_dump("Before", buffer, offset, len(descriptor.find))

        try:
            write_within_bounds(buffer, offset, descriptor.replace.data)
        except BufferOverrunError as exc:
            logger.error("Patch '%s' aborted, target binary may be corrupt or mismatched: %s",
                         descriptor.label, exc)
            return PatchApplicationResult(descriptor, offset_found=offset, error=exc)

        self._log_dump("After", buffer, offset, len(descriptor.replace))
        return PatchApplicationResult(descriptor, offset_found=offset, applied=True)

    def _log_dump(self, title: str, buffer: bytearray, offset: int, length: int) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug("%s:", title)
        for row in format_hex_dump(buffer, offset, length, self.hex_context):
            logger.debug("  %s", row)
