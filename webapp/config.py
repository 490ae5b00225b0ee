"""
Web application configuration.

Frozen dataclass with defaults, loaded from environment variables.
Config.load() reads ~/.webapp/webapp.env first (when present); values
already set in the process environment win.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

SCREENSHOTS_DISABLE = 'disable'
SCREENSHOTS_ENABLE = 'enable'
SCREENSHOTS_AFTER_ERROR = 'afterError'
SCREENSHOT_MODES = (SCREENSHOTS_DISABLE, SCREENSHOTS_ENABLE, SCREENSHOTS_AFTER_ERROR)

DEFAULT_ENV_FILE = Path.home() / '.webapp' / 'webapp.env'


@dataclass(frozen=True)
class DevtoolConfig:
    """Connection to the devtool browser extension (element highlighting)."""

    extension_id: str
    host: str = 'localhost'
    http_port: int = 9000
    ws_port: int = 9001


@dataclass(frozen=True)
class Config:
    """Immutable web application configuration. Timeouts in milliseconds."""

    # Driver
    webdriver_url: str = 'http://localhost:4444'
    client_timeout_seconds: float = 60.0

    # Screenshots
    screenshots: str = SCREENSHOTS_DISABLE
    screenshot_path: str = './_tmp/'
    max_write_thread_count: int = 2

    # Waits
    wait_timeout_ms: int = 30000
    page_load_timeout_ms: int = 3 * 60000
    tick_ms: int = 100

    # Remote highlight side channel, None when not connected
    devtool: DevtoolConfig | None = None

    def __post_init__(self) -> None:
        if self.screenshots not in SCREENSHOT_MODES:
            raise ValueError(
                f"SCREENSHOTS must be one of {', '.join(SCREENSHOT_MODES)}, "
                f'got {self.screenshots!r}'
            )

    @property
    def screenshots_enabled(self) -> bool:
        return self.screenshots != SCREENSHOTS_DISABLE

    @classmethod
    def load(cls, env_file: Path | None = None) -> Config:
        """Load configuration from environment variables.

        Raises ValueError if a numeric or enumerated value is malformed.
        """
        env_path = env_file or DEFAULT_ENV_FILE
        if env_path.exists():
            load_dotenv(env_path)

        devtool = None
        extension_id = os.environ.get('DEVTOOL_EXTENSION_ID', '').strip()
        if extension_id:
            devtool = DevtoolConfig(
                extension_id=extension_id,
                host=os.environ.get('DEVTOOL_HOST', 'localhost').strip(),
                http_port=_int('DEVTOOL_HTTP_PORT', 9000),
                ws_port=_int('DEVTOOL_WS_PORT', 9001),
            )

        return cls(
            webdriver_url=os.environ.get('WEBDRIVER_URL', 'http://localhost:4444').strip(),
            client_timeout_seconds=_float('CLIENT_TIMEOUT_SECONDS', 60.0),
            screenshots=os.environ.get('SCREENSHOTS', SCREENSHOTS_DISABLE).strip(),
            screenshot_path=os.environ.get('SCREENSHOT_PATH', './_tmp/').strip(),
            max_write_thread_count=_int('MAX_WRITE_THREAD_COUNT', 2),
            wait_timeout_ms=_int('WAIT_TIMEOUT_MS', 30000),
            page_load_timeout_ms=_int('PAGE_LOAD_TIMEOUT_MS', 3 * 60000),
            tick_ms=_int('TICK_MS', 100),
            devtool=devtool,
        )


def _int(key: str, default: int) -> int:
    raw = os.environ.get(key, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{key} must be an integer, got {raw!r}') from None


def _float(key: str, default: float) -> float:
    raw = os.environ.get(key, '').strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f'{key} must be a number, got {raw!r}') from None
