from __future__ import annotations

import os
import stat
import sys
import zipfile
from pathlib import Path

import pytest

from apkpatch.app.context import PatchContext
from apkpatch.app.pipeline import run_pipeline
from apkpatch.config import BuildToolsConfig
from apkpatch.exceptions import (
    ConfigurationError,
    ExternalToolError,
    InputNotFoundError,
    PatternDecodeError,
)
from apkpatch.patching.walker import ArchitectureStatus

from conftest import payload_with_signature

pytestmark = pytest.mark.integration

posix_only = pytest.mark.skipif(os.name == "nt", reason="fake tools are shebang scripts")

FAKE_ZIPALIGN = """#!{python}
import shutil, sys
shutil.copyfile(sys.argv[-2], sys.argv[-1])
print("Verification succesful")
"""

FAKE_APKSIGNER = """#!{python}
import shutil, sys
args = sys.argv[1:]
assert args[0] == "sign"
shutil.copyfile(args[-1], args[args.index("--out") + 1])
"""

FAILING_TOOL = """#!{python}
import sys
print("zipalign: unable to open")
sys.exit(1)
"""


def _script(path: Path, body: str) -> str:
    path.write_text(body.format(python=sys.executable), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


def _apk(work_dir: Path, build_zip) -> Path:
    return build_zip(
        work_dir / "game.apk",
        [
            ("AndroidManifest.xml", b"<manifest/>", zipfile.ZIP_DEFLATED),
            ("resources.arsc", b"\x02\x00" * 32, zipfile.ZIP_STORED),
            ("lib/arm64-v8a/libil2cpp.so", payload_with_signature(b"\xAA\xBB\xCC"), zipfile.ZIP_DEFLATED),
            ("lib/armeabi-v7a/libil2cpp.so", payload_with_signature(b"\x01\x02\x03\x04"), zipfile.ZIP_DEFLATED),
            ("lib/x86/libmain.so", b"\x00" * 16, zipfile.ZIP_DEFLATED),
        ],
    )


def _context(work_dir: Path, **overrides) -> PatchContext:
    settings = {"align_apk": False, "sign_apk": False}
    settings.update(overrides)
    return PatchContext(config=BuildToolsConfig(**settings), work_dir=work_dir, log_dir=work_dir / "logs")


def test_patch_without_align_and_sign(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = _apk(tmp_path, build_zip)
    context = _context(tmp_path)

    report = run_pipeline(context, apk, patch_xml)

    assert report.success
    assert report.final_path == tmp_path / "patched.apk"
    assert not report.aligned and not report.signed
    assert not context.extract_dir.exists()

    walk = report.walk
    assert walk.get("arm64-v8a").status == ArchitectureStatus.PATCHED
    assert walk.get("arm64-v8a").applied_count == 1
    assert walk.get("armeabi-v7a").missed_count == 1
    assert walk.get("x86").status == ArchitectureStatus.PAYLOAD_MISSING

    with zipfile.ZipFile(report.final_path) as zf:
        patched = zf.read("lib/arm64-v8a/libil2cpp.so")
        assert patched[100:103] == b"\x11\x22\x33"
        assert zf.read("lib/armeabi-v7a/libil2cpp.so") == payload_with_signature(b"\x01\x02\x03\x04")
        assert zf.getinfo("resources.arsc").compress_type == zipfile.ZIP_STORED
        assert zf.getinfo("AndroidManifest.xml").compress_type == zipfile.ZIP_DEFLATED


@posix_only
def test_align_and_sign_produce_signed_apk(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = _apk(tmp_path, build_zip)
    tools = tmp_path / "tools"
    tools.mkdir()
    keystore = tmp_path / "keystore"
    keystore.mkdir()
    (keystore / "debug.keystore").write_bytes(b"ks")
    (keystore / "password.txt").write_text("android", encoding="utf-8")

    context = _context(
        tmp_path,
        align_apk=True,
        sign_apk=True,
        zipalign_path=_script(tools / "zipalign", FAKE_ZIPALIGN),
        apksigner_path=_script(tools / "apksigner", FAKE_APKSIGNER),
    )

    report = run_pipeline(context, apk, patch_xml)

    assert report.aligned and report.signed
    assert report.final_path == tmp_path / "signed.apk"
    assert report.final_path.is_file()
    assert not (tmp_path / "patched.apk").exists()
    assert not (tmp_path / "aligned.apk").exists()
    with zipfile.ZipFile(report.final_path) as zf:
        assert zf.read("lib/arm64-v8a/libil2cpp.so")[100:103] == b"\x11\x22\x33"


@posix_only
def test_failing_zipalign_keeps_patched_apk(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = _apk(tmp_path, build_zip)
    tools = tmp_path / "tools"
    tools.mkdir()
    context = _context(tmp_path, align_apk=True, zipalign_path=_script(tools / "zipalign", FAILING_TOOL))

    with pytest.raises(ExternalToolError) as excinfo:
        run_pipeline(context, apk, patch_xml)

    assert excinfo.value.exit_code == 1
    assert "unable to open" in excinfo.value.output
    assert (tmp_path / "patched.apk").is_file()
    assert not (tmp_path / "aligned.apk").exists()


def test_missing_tools_fail_before_any_output(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = _apk(tmp_path, build_zip)
    context = _context(tmp_path, align_apk=True)

    with pytest.raises(ConfigurationError):
        run_pipeline(context, apk, patch_xml)

    assert not context.extract_dir.exists()
    assert not (tmp_path / "patched.apk").exists()


def test_signing_without_keystore_fails_early(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = _apk(tmp_path, build_zip)
    signer = tmp_path / "apksigner.jar"
    signer.write_bytes(b"")
    context = _context(tmp_path, sign_apk=True, apksigner_path=str(signer))

    with pytest.raises(InputNotFoundError):
        run_pipeline(context, apk, patch_xml)
    assert not (tmp_path / "patched.apk").exists()


def test_stale_outputs_are_removed(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = _apk(tmp_path, build_zip)
    (tmp_path / "signed.apk").write_bytes(b"old")
    (tmp_path / "aligned.apk").write_bytes(b"old")

    run_pipeline(_context(tmp_path), apk, patch_xml)

    assert not (tmp_path / "signed.apk").exists()
    assert not (tmp_path / "aligned.apk").exists()


def test_no_architecture_with_payload(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = build_zip(
        tmp_path / "game.apk",
        [("lib/x86/libmain.so", b"\x00", zipfile.ZIP_DEFLATED)],
    )
    with pytest.raises(InputNotFoundError):
        run_pipeline(_context(tmp_path), apk, patch_xml)
    assert not (tmp_path / "patched.apk").exists()


def test_archive_without_lib_dir(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    apk = build_zip(tmp_path / "game.apk", [("AndroidManifest.xml", b"<m/>", zipfile.ZIP_DEFLATED)])
    with pytest.raises(InputNotFoundError):
        run_pipeline(_context(tmp_path), apk, patch_xml)


def test_missing_archive(tmp_path: Path, patch_xml: Path) -> None:
    with pytest.raises(InputNotFoundError):
        run_pipeline(_context(tmp_path), tmp_path / "missing.apk", patch_xml)


def test_missing_patch_source(tmp_path: Path, build_zip) -> None:
    apk = _apk(tmp_path, build_zip)
    with pytest.raises(InputNotFoundError):
        run_pipeline(_context(tmp_path), apk, tmp_path / "none.xml")


def test_malformed_patch_source(tmp_path: Path, build_zip) -> None:
    apk = _apk(tmp_path, build_zip)
    bad = tmp_path / "patches.xml"
    bad.write_text("<Patches><Patch>", encoding="utf-8")
    with pytest.raises(PatternDecodeError):
        run_pipeline(_context(tmp_path), apk, bad)


@pytest.mark.parametrize("name", ["signed.apk", "aligned.apk", "patched.apk"])
def test_previous_output_as_input_is_refused_untouched(tmp_path: Path, build_zip, patch_xml: Path, name: str) -> None:
    apk = _apk(tmp_path, build_zip)
    previous = tmp_path / name
    apk.rename(previous)
    original = previous.read_bytes()

    with pytest.raises(ConfigurationError) as excinfo:
        run_pipeline(_context(tmp_path), previous, patch_xml)

    assert excinfo.value.details["file_path"] == str(previous)
    assert previous.read_bytes() == original


def test_input_inside_extraction_dir_is_refused(tmp_path: Path, build_zip, patch_xml: Path) -> None:
    context = _context(tmp_path)
    context.extract_dir.mkdir()
    apk = _apk(context.extract_dir, build_zip)

    with pytest.raises(ConfigurationError):
        run_pipeline(context, apk, patch_xml)

    assert apk.is_file()
