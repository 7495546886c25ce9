import os
from pathlib import Path

import run
from gapfill import config


def _parse_env_file(env_path: Path, *, override: bool = False) -> None:
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        if override or key not in os.environ:
            os.environ[key] = val


def test_load_env_is_optional_and_does_not_override_env(tmp_path: Path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("GAPFILL_API_TOKEN=from-dotenv\n", encoding="utf-8")

    called: dict = {}

    def fake_load_dotenv(*, dotenv_path, override=False):
        called["dotenv_path"] = Path(dotenv_path).resolve()
        _parse_env_file(Path(dotenv_path), override=bool(override))
        return True

    monkeypatch.setattr(run, "_load_dotenv", fake_load_dotenv)
    monkeypatch.setenv("GAPFILL_API_TOKEN", "from-env")

    run.load_env(root_dir=tmp_path)

    assert called["dotenv_path"] == env_path.resolve()
    assert os.environ.get("GAPFILL_API_TOKEN") == "from-env"


def test_load_env_missing_file_is_skipped(tmp_path: Path, monkeypatch):
    def fail_load_dotenv(**kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(run, "_load_dotenv", fail_load_dotenv)

    run.load_env(root_dir=tmp_path)


def test_env_overrides_reach_config(monkeypatch):
    for name in ("API_BASE_URL", "API_TOKEN", "PRACTICE_NAME", "BUILD_MODE", "FORCE_PRODUCTION", "DISPLAY_TIMEZONE"):
        monkeypatch.setattr(config, name, getattr(config, name))
    monkeypatch.setenv("GAPFILL_PRACTICE_NAME", "Paws On Wheels")
    monkeypatch.setenv("GAPFILL_BUILD_MODE", "production")
    monkeypatch.setenv("GAPFILL_FORCE_PRODUCTION", "0")

    config.load_env_overrides()

    assert config.PRACTICE_NAME == "Paws On Wheels"
    assert config.BUILD_MODE == "production"
    assert config.FORCE_PRODUCTION is False
