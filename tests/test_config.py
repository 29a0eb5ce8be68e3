from __future__ import annotations

from pathlib import Path

import pytest

from skm.config import load_settings, resolve_settings_file
from skm.errors import ConfigurationError


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "absent.yaml")

    assert settings.attention_threshold == 50.0
    assert settings.weights.needs_human == 40.0
    assert settings.scan.scan_depth == 5
    assert settings.scan.watch_interval_secs == 5
    assert settings.scan.workers == 1
    assert settings.scan.max_projects is None
    assert settings.automation.automation_level == "L1"
    assert settings.automation.dry_run_default is True
    assert settings.automation.agent_priority == ["claude", "cursor", "nvim", "bash"]
    assert settings.cache.freshness_minutes == 5.0


def test_yaml_values_are_loaded(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text(
        "attention_threshold: 65\n"
        "weights:\n"
        "  risk: 30\n"
        "scan:\n"
        "  scan_depth: 3\n"
        "  max_projects: 20\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert settings.attention_threshold == 65.0
    assert settings.weights.risk == 30.0
    assert settings.weights.staleness == 15.0
    assert settings.scan.scan_depth == 3
    assert settings.scan.max_projects == 20
    assert settings.logging.level == "DEBUG"


def test_environment_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("scan:\n  workers: 2\n", encoding="utf-8")
    monkeypatch.setenv("SKM_SCAN__WORKERS", "6")

    assert load_settings(config).scan.workers == 6


def test_settings_file_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "from-env.yaml"
    config.write_text("attention_threshold: 42\n", encoding="utf-8")
    monkeypatch.setenv("SKM_SETTINGS_FILE", str(config))

    assert resolve_settings_file() == config
    assert load_settings().attention_threshold == 42.0


@pytest.mark.parametrize(
    "content",
    [
        "scan: [unclosed\n",
        "scan:\n  workers: 0\n",
        "automation:\n  automation_level: L9\n",
    ],
)
def test_invalid_settings_raise_configuration_error(tmp_path: Path, content: str) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid settings file"):
        load_settings(config)


def test_as_dict_is_json_ready(tmp_path: Path) -> None:
    payload = load_settings(tmp_path / "absent.yaml").as_dict()
    assert payload["logging"] == {"level": "INFO", "log_file": None}
    assert set(payload) == {"weights", "attention_threshold", "scan", "automation", "cache", "logging"}
