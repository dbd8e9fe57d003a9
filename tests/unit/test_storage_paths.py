from __future__ import annotations

from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch

from src.utils import storage_paths


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: MonkeyPatch) -> None:
    for name in ("QUICK_SHARE_STORAGE_DIR", "VERCEL", "AWS_LAMBDA_FUNCTION_NAME", "K_SERVICE"):
        monkeypatch.delenv(name, raising=False)


def test_env_var_wins(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("QUICK_SHARE_STORAGE_DIR", str(tmp_path / "env"))
    monkeypatch.setenv("VERCEL", "1")
    assert storage_paths.resolve_uploads_dir(str(tmp_path / "cfg")) == tmp_path / "env"


def test_configured_dir_is_used(tmp_path: Path) -> None:
    assert storage_paths.resolve_uploads_dir(str(tmp_path / "cfg")) == tmp_path / "cfg"


def test_serverless_platform_uses_temp_dir(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("VERCEL", "1")
    assert storage_paths.resolve_uploads_dir() == storage_paths.get_scratch_uploads_dir()


def test_default_dir_when_writable(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    default = tmp_path / "datas" / "uploads"
    monkeypatch.setattr(storage_paths, "get_default_uploads_dir", lambda: default)
    assert storage_paths.resolve_uploads_dir() == default


def test_read_only_default_falls_back_to_temp_dir(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setattr(storage_paths, "get_default_uploads_dir", lambda: tmp_path / "ro")
    monkeypatch.setattr(storage_paths, "_is_writable", lambda _p: False)
    assert storage_paths.resolve_uploads_dir() == storage_paths.get_scratch_uploads_dir()
