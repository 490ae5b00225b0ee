"""Tests for web application configuration loading."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from webapp.config import (
    SCREENSHOTS_AFTER_ERROR,
    SCREENSHOTS_DISABLE,
    SCREENSHOTS_ENABLE,
    Config,
    DevtoolConfig,
)

_ALL_KEYS = [
    'WEBDRIVER_URL', 'CLIENT_TIMEOUT_SECONDS', 'SCREENSHOTS', 'SCREENSHOT_PATH',
    'MAX_WRITE_THREAD_COUNT', 'WAIT_TIMEOUT_MS', 'PAGE_LOAD_TIMEOUT_MS', 'TICK_MS',
    'DEVTOOL_EXTENSION_ID', 'DEVTOOL_HOST', 'DEVTOOL_HTTP_PORT', 'DEVTOOL_WS_PORT',
]


@pytest.fixture()
def env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear every config key; values loaded from an env file are undone too."""
    for key in _ALL_KEYS:
        monkeypatch.setenv(key, 'x')
        monkeypatch.delenv(key)


@pytest.fixture()
def missing_env_file(tmp_path: Path) -> Path:
    return tmp_path / 'missing.env'


def test_defaults(env: None, missing_env_file: Path) -> None:
    """No env vars set: Config.load() matches the dataclass defaults."""
    cfg = Config.load(missing_env_file)
    assert cfg == Config()
    assert cfg.webdriver_url == 'http://localhost:4444'
    assert cfg.screenshots == SCREENSHOTS_DISABLE
    assert cfg.screenshot_path == './_tmp/'
    assert cfg.max_write_thread_count == 2
    assert cfg.wait_timeout_ms == 30000
    assert cfg.page_load_timeout_ms == 180000
    assert cfg.tick_ms == 100
    assert cfg.devtool is None
    assert cfg.screenshots_enabled is False


def test_load_from_environment(
    env: None, missing_env_file: Path, monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv('WEBDRIVER_URL', ' http://grid:4444 ')
    monkeypatch.setenv('SCREENSHOTS', SCREENSHOTS_AFTER_ERROR)
    monkeypatch.setenv('SCREENSHOT_PATH', '/var/shots')
    monkeypatch.setenv('WAIT_TIMEOUT_MS', '5000')
    monkeypatch.setenv('CLIENT_TIMEOUT_SECONDS', '12.5')

    cfg = Config.load(missing_env_file)
    assert cfg.webdriver_url == 'http://grid:4444'
    assert cfg.screenshots == SCREENSHOTS_AFTER_ERROR
    assert cfg.screenshots_enabled is True
    assert cfg.screenshot_path == '/var/shots'
    assert cfg.wait_timeout_ms == 5000
    assert cfg.client_timeout_seconds == 12.5


def test_invalid_screenshot_mode(
    env: None, missing_env_file: Path, monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv('SCREENSHOTS', 'always')
    with pytest.raises(ValueError, match='SCREENSHOTS'):
        Config.load(missing_env_file)


@pytest.mark.parametrize('key', ['WAIT_TIMEOUT_MS', 'TICK_MS', 'MAX_WRITE_THREAD_COUNT'])
def test_invalid_integer_names_key(
    env: None, missing_env_file: Path, monkeypatch: pytest.MonkeyPatch, key: str,
) -> None:
    monkeypatch.setenv(key, 'soon')
    with pytest.raises(ValueError, match=key):
        Config.load(missing_env_file)


def test_invalid_float_names_key(
    env: None, missing_env_file: Path, monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv('CLIENT_TIMEOUT_SECONDS', 'forever')
    with pytest.raises(ValueError, match='CLIENT_TIMEOUT_SECONDS'):
        Config.load(missing_env_file)


def test_devtool_enabled_by_extension_id(
    env: None, missing_env_file: Path, monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv('DEVTOOL_EXTENSION_ID', 'abcdef')
    monkeypatch.setenv('DEVTOOL_HTTP_PORT', '9100')

    cfg = Config.load(missing_env_file)
    assert cfg.devtool == DevtoolConfig(extension_id='abcdef', http_port=9100)
    assert cfg.devtool.ws_port == 9001


def test_env_file_is_read(env: None, tmp_path: Path) -> None:
    env_file = tmp_path / 'webapp.env'
    env_file.write_text('SCREENSHOTS=enable\nTICK_MS=25\n')

    cfg = Config.load(env_file)
    assert cfg.screenshots == SCREENSHOTS_ENABLE
    assert cfg.tick_ms == 25


def test_process_environment_wins_over_env_file(
    env: None, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> None:
    env_file = tmp_path / 'webapp.env'
    env_file.write_text('TICK_MS=25\n')
    monkeypatch.setenv('TICK_MS', '50')

    assert Config.load(env_file).tick_ms == 50


def test_config_is_frozen() -> None:
    cfg = Config()
    with pytest.raises(FrozenInstanceError):
        cfg.tick_ms = 1  # type: ignore[misc]


def test_constructor_validates_mode() -> None:
    with pytest.raises(ValueError):
        Config(screenshots='sometimes')
