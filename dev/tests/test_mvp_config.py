from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from apkpatch.config import (
    BuildToolsConfig,
    ConfigStatus,
    get_config_path,
    load_build_tools_config,
    save_build_tools_config,
)
from apkpatch.config.schema import validate_config_schema


def _fake_tools(tmp_path: Path) -> dict:
    zipalign = tmp_path / "zipalign"
    apksigner = tmp_path / "apksigner.jar"
    zipalign.write_bytes(b"")
    apksigner.write_bytes(b"")
    return {"zipalign_path": str(zipalign), "apksigner_path": str(apksigner)}


def test_defaults() -> None:
    config = BuildToolsConfig()
    assert config.align_apk is True
    assert config.sign_apk is True
    assert config.payload_name == "libil2cpp.so"
    assert config.native_lib_dir == "lib"
    assert config.compress_level == 9
    assert config.work_dir_name == "temp_apk"
    assert set(config.missing_tools()) == {"zipalign_path", "apksigner_path"}
    assert config.is_valid is False


def test_disabled_steps_need_no_tools() -> None:
    config = BuildToolsConfig(align_apk=False, sign_apk=False)
    assert config.missing_tools() == {}
    assert config.is_valid is True


def test_compress_level_bounds() -> None:
    with pytest.raises(PydanticValidationError):
        BuildToolsConfig(compress_level=10)
    with pytest.raises(PydanticValidationError):
        BuildToolsConfig(tool_timeout_sec=0)


def test_schema_rejects_wrong_types() -> None:
    ok, error = validate_config_schema({"align_apk": "yes"})
    assert ok is False
    assert error


def test_absent_config(tmp_path: Path) -> None:
    result = load_build_tools_config(tmp_path / "config.json")
    assert result.status == ConfigStatus.ABSENT
    assert result.config is None
    assert result.ok is False


def test_malformed_config(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    result = load_build_tools_config(path)
    assert result.status == ConfigStatus.MALFORMED
    assert result.error


def test_non_object_config_is_malformed(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert load_build_tools_config(path).status == ConfigStatus.MALFORMED


def test_schema_violation_is_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"compress_level": 42}), encoding="utf-8")
    result = load_build_tools_config(path)
    assert result.status == ConfigStatus.INVALID
    assert result.config is None


def test_missing_tools_is_invalid_but_keeps_config(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"zipalign_path": str(tmp_path / "nope")}), encoding="utf-8")
    result = load_build_tools_config(path)
    assert result.status == ConfigStatus.INVALID
    assert result.config is not None
    assert "zipalign_path" in result.missing_tools
    assert "apksigner_path" in result.missing_tools


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    config = BuildToolsConfig(build_tools_version="34.0.0", key_alias="release", **_fake_tools(tmp_path))
    path = save_build_tools_config(config, tmp_path / "nested" / "config.json")

    result = load_build_tools_config(path)

    assert result.ok
    assert result.config == config


def test_unknown_keys_are_kept(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"align_apk": False, "sign_apk": False, "note": "local"}), encoding="utf-8")
    result = load_build_tools_config(path)
    assert result.ok
    assert result.config.model_dump()["note"] == "local"


def test_config_path_env_override(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("APKPATCH_CONFIG", raising=False)
    assert get_config_path(tmp_path) == tmp_path / "config.json"

    custom = tmp_path / "custom.json"
    monkeypatch.setenv("APKPATCH_CONFIG", str(custom))
    assert get_config_path(tmp_path) == custom
