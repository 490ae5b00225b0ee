"""Shared pytest configuration for webapp tests."""

from __future__ import annotations

import asyncio
import base64
import sys
from pathlib import Path
from typing import Any

import pytest

# webapp/ is a namespace package (no __init__.py) imported as
# `from webapp.xxx import ...`, so the PROJECT ROOT (parent of webapp/) must
# be on sys.path and webapp/ itself must not shadow it.
_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent.parent)
_WEBAPP_DIR = str(Path(__file__).resolve().parent.parent)

sys.path[:] = [p for p in sys.path if p != _WEBAPP_DIR]

if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from webapp.breakpoints import AsyncBreakpoints  # noqa: E402
from webapp.errors import DriverError, ElementNotFoundError, WaitTimeoutError  # noqa: E402
from webapp.selectors import ROOT_XPATH  # noqa: E402
from webapp.step_logger import StepLogger  # noqa: E402

_TINY_PNG = b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR'


# ---------------------------------------------------------------------------
# Recording logger
# ---------------------------------------------------------------------------

class RecordingLogger(StepLogger):
    """StepLogger that also keeps every step event and line in memory."""

    def __init__(self) -> None:
        super().__init__('[test]')
        self.events: list[tuple[str, str]] = []
        self.lines: list[tuple[int, str]] = []

    def start_step(self, message: str) -> None:
        self.events.append(('start', message))
        super().start_step(message)

    def end_step(self, message: str) -> None:
        self.events.append(('end', message))
        super().end_step(message)

    def _emit(self, level: int, message: str, *args: object, **kwargs) -> None:
        text = str(message) % args if args else str(message)
        self.lines.append((level, text))
        super()._emit(level, message, *args, **kwargs)

    def texts(self, level: int | None = None) -> list[str]:
        return [text for lvl, text in self.lines if level is None or lvl == level]


# ---------------------------------------------------------------------------
# In-memory driver
# ---------------------------------------------------------------------------

class FakeDriver:
    """Driver double with tab state and per-xpath element state.

    existing: xpaths that exist (the root always does unless root_missing).
    visible: xpath -> displayed flag.
    on_wait_for_exist: optional hook(xpath, timeout_ms) run before answering.
    alert_opens_after: number of alert_text calls answered with "no such alert"
        before the alert appears (None keeps it closed).
    """

    def __init__(self, tabs: tuple[str, ...] = ('tab-1',)) -> None:
        self.tabs: list[str] = list(tabs)
        self.current: str | None = self.tabs[0] if self.tabs else None
        self.current_tab_queries = 0
        self.calls: list[tuple[Any, ...]] = []

        self.existing: set[str] = set()
        self.root_missing = False
        self.visible: dict[str, bool] = {}
        self.values: dict[str, Any] = {}
        self.attributes: dict[tuple[str, str], Any] = {}
        self.tag_names: dict[str, str] = {}
        self.texts: dict[str, list[str]] = {}
        self.selected: dict[str, bool] = {}
        self.sizes: dict[str, dict] = {}
        self.script_results: dict[str, Any] = {}
        self.failing: dict[str, Exception] = {}

        self.current_url: str | None = 'about:blank'
        self.url_delay: float = 0
        self.on_wait_for_exist = None
        self.screenshot_error: Exception | None = None
        self.screenshots_taken = 0
        self.ended = False

        self.alert_message = ''
        self.alert_opens_after: int | None = None
        self.alert_open = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name,) + args)
        if name in self.failing:
            raise self.failing[name]

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    # -- tabs ----------------------------------------------------------------

    async def get_current_tab_id(self) -> str | None:
        self.current_tab_queries += 1
        return self.current

    async def get_tab_ids(self) -> list[str]:
        return list(self.tabs)

    async def switch_tab(self, tab_id: str) -> None:
        self._record('switch_tab', tab_id)
        self.current = tab_id

    async def window_handles(self) -> list[str]:
        return list(self.tabs)

    async def close(self, tab_id: str | None = None) -> list[str]:
        target = tab_id or self.current
        self._record('close', target)
        self.tabs.remove(target)
        if self.current == target:
            self.current = None
        return list(self.tabs)

    async def end(self) -> None:
        self._record('end')
        self.ended = True

    # -- elements ------------------------------------------------------------

    def _exists(self, xpath: str) -> bool:
        if xpath == ROOT_XPATH:
            return not self.root_missing
        return xpath in self.existing

    async def wait_for_exist(self, xpath: str, timeout_ms: float) -> bool:
        self._record('wait_for_exist', xpath, timeout_ms)
        if self.on_wait_for_exist is not None:
            self.on_wait_for_exist(xpath, timeout_ms)
        if not self._exists(xpath):
            raise WaitTimeoutError(f'element ("{xpath}") still not existing after {timeout_ms}ms')
        return True

    async def wait_for_visible(self, xpath: str, timeout_ms: float) -> bool:
        self._record('wait_for_visible', xpath, timeout_ms)
        if not self.visible.get(xpath, False):
            raise WaitTimeoutError(f'element ("{xpath}") still not displayed after {timeout_ms}ms')
        return True

    async def is_visible(self, xpath: str) -> bool:
        self._record('is_visible', xpath)
        return self.visible.get(xpath, False)

    async def is_existing(self, xpath: str) -> bool:
        return self._exists(xpath)

    def _require(self, xpath: str) -> None:
        if not self._exists(xpath):
            raise ElementNotFoundError(f'no such element: {xpath}')

    async def move_to_object(self, xpath: str, x: float = 1, y: float = 1) -> None:
        self._record('move_to_object', xpath, x, y)

    async def click(self, xpath: str, x: float | None = None, y: float | None = None,
                    button: str = 'left') -> None:
        self._record('click', xpath, x, y, button)
        self._require(xpath)

    async def get_size(self, xpath: str) -> dict:
        return self.sizes.get(xpath, {'width': 10, 'height': 10})

    async def get_value(self, xpath: str) -> Any:
        self._record('get_value', xpath)
        return self.values.get(xpath)

    async def set_value(self, xpath: str, value: Any) -> None:
        self._record('set_value', xpath, value)
        self.values[xpath] = value

    async def keys(self, value: Any) -> None:
        self._record('keys', value)

    async def elements(self, xpath: str) -> list[str]:
        self._record('elements', xpath)
        return [f'{xpath}#{i}' for i in range(len(self.texts.get(xpath, [])))]

    async def element_text(self, element_id: str) -> str:
        xpath, _, index = element_id.rpartition('#')
        return self.texts[xpath][int(index)]

    async def get_text(self, xpath: str) -> str:
        self._record('get_text', xpath)
        self._require(xpath)
        return ' '.join(self.texts.get(xpath, []))

    async def get_attribute(self, xpath: str, name: str) -> Any:
        self._record('get_attribute', xpath, name)
        return self.attributes.get((xpath, name))

    async def get_tag_name(self, xpath: str) -> str:
        return self.tag_names.get(xpath, 'div')

    async def is_selected(self, xpath: str) -> bool:
        self._record('is_selected', xpath)
        return self.selected.get(xpath, False)

    async def is_enabled(self, xpath: str) -> bool:
        self._record('is_enabled', xpath)
        return self.attributes.get((xpath, 'disabled')) is None

    async def select_by_value(self, xpath: str, value: Any) -> None:
        self._record('select_by_value', xpath, value)

    async def scroll_into_view(self, xpath: str) -> None:
        self._record('scroll_into_view', xpath)

    # -- page ----------------------------------------------------------------

    async def url(self, value: str | None = None) -> str | None:
        if value is None:
            return self.current_url
        self._record('url', value)
        if self.url_delay:
            await asyncio.sleep(self.url_delay)
        self.current_url = value
        return None

    async def refresh(self) -> None:
        self._record('refresh')

    async def execute(self, script: str, *args: Any) -> Any:
        self._record('execute', script, *args)
        return self.script_results.get(script, True)

    async def execute_async(self, script: str, *args: Any) -> Any:
        self._record('execute_async', script, *args)
        return self.script_results.get(script)

    async def make_screenshot(self) -> str:
        self.screenshots_taken += 1
        if self.screenshot_error is not None:
            raise self.screenshot_error
        return base64.b64encode(_TINY_PNG).decode()

    # -- alerts --------------------------------------------------------------

    async def alert_text(self) -> str:
        self._record('alert_text')
        if not self.alert_open and self.alert_opens_after is not None:
            self.alert_open = len(self.called('alert_text')) > self.alert_opens_after
        if not self.alert_open:
            raise DriverError('no such alert', 'no such alert', 404)
        return self.alert_message

    async def alert_accept(self) -> None:
        self._record('alert_accept')
        self.alert_open = False

    async def alert_dismiss(self) -> None:
        self._record('alert_dismiss')
        self.alert_open = False

    async def is_alert_open(self) -> bool:
        return self.alert_open


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def breakpoints() -> AsyncBreakpoints:
    """Private breakpoint instance so tests never touch the process-wide one."""
    return AsyncBreakpoints()


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def make_driver():
    """Factory for FakeDriver instances with a given tab list."""
    def factory(*tabs: str) -> FakeDriver:
        return FakeDriver(tabs=tabs)
    return factory
