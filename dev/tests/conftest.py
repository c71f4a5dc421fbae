from __future__ import annotations

import sys
import zipfile
from pathlib import Path
from typing import Callable, Iterable, Tuple, Union

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

Entry = Tuple[str, Union[bytes, None], int]


@pytest.fixture
def build_zip() -> Callable[[Path, Iterable[Entry]], Path]:
    """Write a zip from ``(name, data, compress_type)``; ``data=None`` makes a directory entry."""

    def _build(path: Path, entries: Iterable[Entry]) -> Path:
        with zipfile.ZipFile(path, "w") as zf:
            for name, data, compress_type in entries:
                if data is None:
                    zf.writestr(zipfile.ZipInfo(name), b"")
                else:
                    zf.writestr(name, data, compress_type=compress_type)
        return path

    return _build


def payload_with_signature(signature: bytes, offset: int = 100, size: int = 512) -> bytes:
    data = bytearray(b"\x90" * size)
    data[offset:offset + len(signature)] = signature
    return bytes(data)


@pytest.fixture
def sample_payload() -> bytes:
    return payload_with_signature(b"\xAA\xBB\xCC")


PATCH_XML = """<?xml version="1.0" encoding="utf-8"?>
<Patches>
  <Patch arch="arm64-v8a">
    <Find>AA BB CC</Find>
    <Replace>11 22 33</Replace>
    <Description>Bypass check</Description>
  </Patch>
  <Patch arch="armeabi-v7a">
    <Find>DE AD BE EF</Find>
    <Replace>00 00 A0 E3</Replace>
  </Patch>
</Patches>
"""


@pytest.fixture
def patch_xml(tmp_path: Path) -> Path:
    path = tmp_path / "patches.xml"
    path.write_text(PATCH_XML, encoding="utf-8")
    return path
