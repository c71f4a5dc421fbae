"""Byte patterns and exact pattern search.

Patterns are written as lenient hex strings: separators, ``0x`` prefixes and
any other non-hex characters are dropped before decoding, so ``"AA BB CC"``,
``"0xAA,0xBB,0xCC"`` and ``"aabbcc"`` all describe the same three bytes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from ..exceptions import PatternDecodeError

_NON_HEX_RE = re.compile(r"[^0-9a-fA-F]")
_HEX_PREFIX_RE = re.compile(r"0[xX](?=[0-9a-fA-F])")

BytesLike = Union[bytes, bytearray, memoryview]


def clean_hex(text: str) -> str:
    """Strip ``0x`` prefixes and every non-hex character from ``text``."""
    without_prefixes = _HEX_PREFIX_RE.sub("", text or "")
    return _NON_HEX_RE.sub("", without_prefixes)


def parse_hex_pattern(text: str) -> bytes:
    """Decode a lenient hex string into bytes.

    Args:
        text: Hex digits with arbitrary separators

    Returns:
        Decoded bytes (at least one byte)

    Raises:
        PatternDecodeError: if no digits remain or the digit count is odd
    """
    if text is None:
        raise PatternDecodeError("Pattern is missing", pattern=None)

    cleaned = clean_hex(str(text))
    if not cleaned:
        raise PatternDecodeError("Pattern contains no hex digits", pattern=str(text))
    if len(cleaned) % 2:
        raise PatternDecodeError(
            f"Pattern has an odd number of hex digits ({len(cleaned)})",
            pattern=str(text),
        )
    try:
        return bytes.fromhex(cleaned)
    except ValueError as exc:
        raise PatternDecodeError(f"Invalid hex pattern: {exc}", pattern=str(text)) from exc


@dataclass(frozen=True)
class BytePattern:
    """Immutable, non-empty byte sequence used as a find or replace pattern."""

    data: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))
        if not self.data:
            raise PatternDecodeError("Byte pattern must not be empty", pattern="")

    @classmethod
    def from_hex(cls, text: str) -> "BytePattern":
        return cls(parse_hex_pattern(text))

    def __len__(self) -> int:
        return len(self.data)

    def __bytes__(self) -> bytes:
        return self.data

    def hex(self, sep: str = " ") -> str:
        return self.data.hex(sep).upper() if sep else self.data.hex().upper()

    def __str__(self) -> str:
        return self.hex()


def find_pattern(haystack: BytesLike, needle: BytesLike, start: int = 0) -> Optional[int]:
    """Return the lowest offset where ``needle`` occurs in ``haystack``.

    Only the first occurrence is reported. An empty needle, or one longer than
    the searched region, is never found.

    Args:
        haystack: Buffer to search
        needle: Exact byte sequence to look for
        start: Offset to begin searching from

    Returns:
        Offset of the first match, or None
    """
    needle_bytes = bytes(needle)
    if not needle_bytes:
        return None
    if start < 0:
        start = 0
    if len(needle_bytes) > len(haystack) - start:
        return None

    if isinstance(haystack, memoryview):
        haystack = haystack.tobytes()
    index = haystack.find(needle_bytes, start)
    return index if index >= 0 else None
