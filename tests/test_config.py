"""Tests for configuration helpers."""

from pathlib import Path

from agent_sidebar.config import (
    SidebarConfig,
    default_state_path,
    load_config,
    save_config,
)


def test_config_round_trip(tmp_path, monkeypatch):
    """Ensure configuration persists to disk and loads back."""

    config_path = tmp_path / "config.json"
    monkeypatch.setenv("AGENT_SIDEBAR_CONFIG", str(config_path))

    original = SidebarConfig(
        visible_root_limit=5,
        indent_step=20,
        state_path=str(tmp_path / "state" / "sidebar.json"),
    )

    save_config(original)
    loaded = load_config()

    assert loaded.visible_root_limit == 5
    assert loaded.indent_step == 20
    assert loaded.state_path == str((tmp_path / "state" / "sidebar.json").resolve())


def test_config_handles_missing_file(monkeypatch, tmp_path):
    """Loading without a file should return defaults."""

    config_path = tmp_path / "missing" / "config.json"
    monkeypatch.setenv("AGENT_SIDEBAR_CONFIG", str(config_path))

    config = load_config()
    assert config.visible_root_limit == 3
    assert config.indent_step == 14
    assert Path(config.state_path) == Path(default_state_path())
    assert Path(config.state_path).parent == config_path.parent.resolve()


def test_config_handles_malformed_file(monkeypatch, tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text("{oops")
    monkeypatch.setenv("AGENT_SIDEBAR_CONFIG", str(config_path))

    config = load_config()
    assert config.visible_root_limit == 3


def test_config_ignores_invalid_values(monkeypatch, tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text('{"visible_root_limit": 0, "indent_step": "wide", "state_path": ""}')
    monkeypatch.setenv("AGENT_SIDEBAR_CONFIG", str(config_path))

    config = load_config()
    assert config.visible_root_limit == 3
    assert config.indent_step == 14
    assert config.state_path == default_state_path()
