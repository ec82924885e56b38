from __future__ import annotations

import json
from pathlib import Path

import pytest

from subsirl.app import config as app_config


def test_load_default_config_contains_expected_keys() -> None:
    cfg = app_config.load_default_config()
    assert cfg["translator"] in {"llm", "echo"}
    assert cfg["source_language"] == "hi"
    assert cfg["target_language"] == "en"
    assert "stage_timeout_sec" in cfg
    assert "max_concurrency" in cfg


def test_resolve_defaults_uses_explicit_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "explicit.json"
    cfg_path.write_text(json.dumps({"sr": 16000, "recognition_model": "whisper-tiny"}), encoding="utf-8")
    defaults, used = app_config.resolve_defaults(str(cfg_path))
    assert used == cfg_path
    assert defaults["sr"] == 16000
    assert defaults["recognition_model"] == "whisper-tiny"


def test_resolve_defaults_missing_explicit_config(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="Config file not found"):
        app_config.resolve_defaults(str(tmp_path / "missing.json"))


def test_ensure_user_config_exists_creates_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    created = app_config.ensure_user_config_exists({"translator": "echo", "sr": 16000})
    assert created.exists()
    loaded = json.loads(created.read_text(encoding="utf-8"))
    assert loaded["translator"] == "echo"
    assert loaded["sr"] == 16000


def test_load_user_config_ignores_unknown_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"sr": 48000, "translator": "echo", "unexpected": 1}),
        encoding="utf-8",
    )
    loaded, used = app_config.load_user_config(str(cfg_path))
    assert used == cfg_path
    assert loaded["sr"] == 48000
    assert loaded["translator"] == "echo"
    assert "unexpected" not in loaded


def test_load_user_config_accepts_bom(tmp_path: Path) -> None:
    cfg_path = tmp_path / "bom.json"
    cfg_path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"poll_ms": 25}).encode("utf-8"))
    loaded, _ = app_config.load_user_config(str(cfg_path))
    assert loaded["poll_ms"] == 25
