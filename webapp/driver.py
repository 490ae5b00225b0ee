"""Async W3C WebDriver client.

Talks to a WebDriver endpoint (chromedriver, geckodriver, Selenium Grid)
over HTTP with a persistent httpx.AsyncClient. Elements are addressed by
XPath; every method looks its element up again, so stale references never
leak out of this module.

Usage:
    client = WebDriverClient('http://localhost:4444')
    await client.start()
    await client.create_session({'browserName': 'chrome'})
    ...
    await client.end()
    await client.close()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from webapp.errors import DriverError, ElementNotFoundError, WaitTimeoutError
from webapp.polling import TICK_MS, poll_until
from webapp.selectors import xpath_literal

log = logging.getLogger(__name__)

ELEMENT_KEY = 'element-6066-11e4-a52e-4f735466cecf'

# W3C key codes for named keys accepted by keys()
KEYS = {
    'Backspace': '\ue003',
    'Tab': '\ue004',
    'Enter': '\ue007',
    'Shift': '\ue008',
    'Control': '\ue009',
    'Alt': '\ue00a',
    'Escape': '\ue00c',
    'Space': '\ue00d',
    'PageUp': '\ue00e',
    'PageDown': '\ue00f',
    'End': '\ue010',
    'Home': '\ue011',
    'ArrowLeft': '\ue012',
    'ArrowUp': '\ue013',
    'ArrowRight': '\ue014',
    'ArrowDown': '\ue015',
    'Delete': '\ue017',
    'Meta': '\ue03d',
}

MOUSE_BUTTONS = {'left': 0, 'middle': 1, 'right': 2}

_SCROLL_SCRIPT = """
var el = arguments[0];
el.scrollIntoView();
window.scrollBy(arguments[1], arguments[2]);
"""

_SCROLL_INTO_VIEW_SCRIPT = 'arguments[0].scrollIntoView();'

_HTML_SCRIPT = 'return arguments[1] ? arguments[0].outerHTML : arguments[0].innerHTML;'

_NEW_WINDOW_SCRIPT = 'window.open(arguments[0], arguments[1], arguments[2]);'


class WebDriverClient:
    """Async HTTP client for one WebDriver session."""

    def __init__(
        self,
        base_url: str = 'http://localhost:4444',
        session_id: str | None = None,
        timeout: float = 60.0,
        tick_ms: float = TICK_MS,
    ) -> None:
        self._base_url = base_url.rstrip('/')
        self._session_id = session_id
        self._timeout = timeout
        self._tick_ms = tick_ms
        self._client: httpx.AsyncClient | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def start(self) -> None:
        """Create the persistent httpx.AsyncClient."""
        self._client = httpx.AsyncClient(timeout=self._timeout)

    async def close(self) -> None:
        """Close the httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_started(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                'WebDriverClient not started. Call await client.start() first.'
            )
        return self._client

    # -- Transport ---------------------------------------------------------------

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        """Send one command. Returns the unwrapped 'value' of the response."""
        client = self._ensure_started()
        url = self._base_url + path
        try:
            if method == 'GET' or method == 'DELETE':
                resp = await client.request(method, url)
            else:
                resp = await client.request(method, url, json=payload or {})
        except httpx.HTTPError as exc:
            raise DriverError(f'{method} {path} failed: {exc}', 'transport error') from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        value = body.get('value') if isinstance(body, dict) else None

        if resp.status_code >= 400:
            error = 'unknown error'
            message = resp.text
            if isinstance(value, dict):
                error = value.get('error', error)
                message = value.get('message', message)
            if error == 'no such element':
                raise ElementNotFoundError(message)
            raise DriverError(message, error, resp.status_code)
        return value

    async def _command(self, method: str, path: str, payload: dict | None = None) -> Any:
        if self._session_id is None:
            raise RuntimeError('No WebDriver session. Call create_session() first.')
        return await self._request(method, f'/session/{self._session_id}{path}', payload)

    # -- Session -----------------------------------------------------------------

    async def create_session(self, capabilities: dict | None = None) -> str:
        """POST /session. Returns the new session id."""
        value = await self._request(
            'POST', '/session',
            {'capabilities': {'alwaysMatch': capabilities or {}}},
        )
        self._session_id = value['sessionId']
        log.info('WebDriver session %s created', self._session_id)
        return self._session_id

    async def end(self) -> None:
        """DELETE /session. Safe to call without a session."""
        if self._session_id is None:
            return
        session_id, self._session_id = self._session_id, None
        await self._request('DELETE', f'/session/{session_id}')
        log.info('WebDriver session %s ended', session_id)

    # -- Elements ----------------------------------------------------------------

    async def _find(self, xpath: str) -> str:
        value = await self._command('POST', '/element', {'using': 'xpath', 'value': xpath})
        return value[ELEMENT_KEY]

    async def _find_all(self, xpath: str) -> list[str]:
        value = await self._command('POST', '/elements', {'using': 'xpath', 'value': xpath})
        return [item[ELEMENT_KEY] for item in value or []]

    async def _element(self, method: str, xpath: str, path: str, payload: dict | None = None) -> Any:
        element_id = await self._find(xpath)
        return await self._command(method, f'/element/{element_id}{path}', payload)

    async def elements(self, xpath: str) -> list[str]:
        """Element ids of every match (empty list when none)."""
        return await self._find_all(xpath)

    async def is_existing(self, xpath: str) -> bool:
        return bool(await self._find_all(xpath))

    async def is_visible(self, xpath: str) -> bool:
        ids = await self._find_all(xpath)
        if not ids:
            return False
        return bool(await self._command('GET', f'/element/{ids[0]}/displayed'))

    async def is_selected(self, xpath: str) -> bool:
        return bool(await self._element('GET', xpath, '/selected'))

    async def element_selected(self, element_id: str) -> bool:
        return bool(await self._command('GET', f'/element/{element_id}/selected'))

    async def is_enabled(self, xpath: str) -> bool:
        return bool(await self._element('GET', xpath, '/enabled'))

    async def get_attribute(self, xpath: str, name: str) -> str | None:
        return await self._element('GET', xpath, f'/attribute/{name}')

    async def get_css_property(self, xpath: str, name: str) -> str:
        return await self._element('GET', xpath, f'/css/{name}')

    async def get_tag_name(self, xpath: str) -> str:
        return await self._element('GET', xpath, '/name')

    async def get_text(self, xpath: str) -> str:
        return await self._element('GET', xpath, '/text')

    async def element_text(self, element_id: str) -> str:
        return await self._command('GET', f'/element/{element_id}/text')

    async def get_value(self, xpath: str) -> Any:
        return await self._element('GET', xpath, '/property/value')

    async def get_size(self, xpath: str) -> dict:
        rect = await self._element('GET', xpath, '/rect')
        return {'width': rect['width'], 'height': rect['height']}

    async def get_html(self, xpath: str, include_selector_tag: bool = True) -> str:
        element_id = await self._find(xpath)
        return await self.execute(_HTML_SCRIPT, element_ref(element_id), include_selector_tag)

    async def set_value(self, xpath: str, value: Any) -> None:
        element_id = await self._find(xpath)
        await self._command('POST', f'/element/{element_id}/clear')
        await self._command('POST', f'/element/{element_id}/value', {'text': str(value)})

    async def clear_value(self, xpath: str) -> None:
        await self._element('POST', xpath, '/clear')

    # -- Waits -------------------------------------------------------------------

    async def _wait(
        self,
        predicate: Callable[[], Awaitable[bool]],
        timeout_ms: float,
        message: str,
        interval_ms: float | None = None,
    ) -> bool:
        tick = self._tick_ms if interval_ms is None else interval_ms
        if not await poll_until(predicate, timeout_ms, tick):
            raise WaitTimeoutError(message)
        return True

    async def wait_for_exist(self, xpath: str, timeout_ms: float) -> bool:
        return await self._wait(
            lambda: self.is_existing(xpath), timeout_ms,
            f'element ("{xpath}") still not existing after {timeout_ms}ms',
        )

    async def wait_for_visible(self, xpath: str, timeout_ms: float) -> bool:
        return await self._wait(
            lambda: self.is_visible(xpath), timeout_ms,
            f'element ("{xpath}") still not displayed after {timeout_ms}ms',
        )

    async def wait_for_value(self, xpath: str, timeout_ms: float, reverse: bool = False) -> bool:
        async def has_value() -> bool:
            value = await self.get_value(xpath)
            return bool(value) != reverse

        state = 'with' if reverse else 'without'
        return await self._wait(
            has_value, timeout_ms,
            f'element ("{xpath}") still {state} a value after {timeout_ms}ms',
        )

    async def wait_for_selected(self, xpath: str, timeout_ms: float, reverse: bool = False) -> bool:
        async def selected() -> bool:
            return await self.is_selected(xpath) != reverse

        state = 'selected' if reverse else 'not selected'
        return await self._wait(
            selected, timeout_ms,
            f'element ("{xpath}") still {state} after {timeout_ms}ms',
        )

    async def wait_until(
        self,
        condition: Callable[[], Awaitable[Any] | Any],
        timeout_ms: float,
        timeout_msg: str = 'Wait by condition failed!',
        interval_ms: float = 500,
    ) -> bool:
        return await self._wait(condition, timeout_ms, timeout_msg, interval_ms)

    # -- Pointer and keyboard ----------------------------------------------------

    async def _perform(self, actions: list[dict]) -> None:
        await self._command('POST', '/actions', {'actions': actions})
        await self._command('DELETE', '/actions')

    async def _pointer_offset(self, element_id: str, x: float, y: float) -> tuple[int, int]:
        # W3C pointer offsets are relative to the element's center.
        rect = await self._command('GET', f'/element/{element_id}/rect')
        return int(x - rect['width'] / 2), int(y - rect['height'] / 2)

    async def move_to_object(self, xpath: str, x: float = 1, y: float = 1) -> None:
        element_id = await self._find(xpath)
        dx, dy = await self._pointer_offset(element_id, x, y)
        await self._perform([_pointer([_move_to(element_id, dx, dy)])])

    async def click(
        self,
        xpath: str,
        x: float | None = None,
        y: float | None = None,
        button: str = 'left',
    ) -> None:
        element_id = await self._find(xpath)
        if x is None and y is None and button == 'left':
            await self._command('POST', f'/element/{element_id}/click')
            return

        dx, dy = await self._pointer_offset(element_id, x or 0, y or 0)
        code = MOUSE_BUTTONS[button]
        await self._perform([_pointer([
            _move_to(element_id, dx, dy),
            {'type': 'pointerDown', 'button': code},
            {'type': 'pointerUp', 'button': code},
        ])])

    async def drag_and_drop(self, source_xpath: str, destination_xpath: str) -> None:
        source = await self._find(source_xpath)
        destination = await self._find(destination_xpath)
        await self._perform([_pointer([
            _move_to(source, 0, 0),
            {'type': 'pointerDown', 'button': 0},
            {'type': 'pause', 'duration': 100},
            _move_to(destination, 0, 0),
            {'type': 'pointerUp', 'button': 0},
        ])])

    async def keys(self, value: str | list[str]) -> None:
        """Type into the focused element. Named keys (e.g. 'Backspace') are mapped."""
        items = [value] if isinstance(value, str) else list(value)
        chars: list[str] = []
        for item in items:
            chars.extend([KEYS[item]] if item in KEYS else list(item))

        key_actions: list[dict] = []
        for char in chars:
            key_actions.append({'type': 'keyDown', 'value': char})
            key_actions.append({'type': 'keyUp', 'value': char})
        await self._perform([{'type': 'key', 'id': 'keyboard', 'actions': key_actions}])

    async def scroll(self, xpath: str, x: int = 0, y: int = 0) -> None:
        element_id = await self._find(xpath)
        await self.execute(_SCROLL_SCRIPT, element_ref(element_id), x, y)

    async def scroll_into_view(self, xpath: str) -> None:
        element_id = await self._find(xpath)
        await self.execute(_SCROLL_INTO_VIEW_SCRIPT, element_ref(element_id))

    # -- Select boxes ------------------------------------------------------------

    async def _click_option(self, option_xpath: str) -> None:
        element_id = await self._find(option_xpath)
        await self._command('POST', f'/element/{element_id}/click')

    async def select_by_index(self, xpath: str, index: int | str) -> None:
        await self._click_option(f'({xpath}//option)[{int(index) + 1}]')

    async def select_by_value(self, xpath: str, value: Any) -> None:
        await self._click_option(f'{xpath}//option[@value={xpath_literal(str(value))}]')

    async def select_by_visible_text(self, xpath: str, text: str) -> None:
        await self._click_option(f'{xpath}//option[normalize-space(.)={xpath_literal(text.strip())}]')

    async def select_by_attribute(self, xpath: str, attribute: str, value: str) -> None:
        await self._click_option(f'{xpath}//option[@{attribute}={xpath_literal(value)}]')

    # -- Navigation --------------------------------------------------------------

    async def url(self, value: str | None = None) -> str | None:
        """Navigate when value is given, otherwise return the current URL."""
        if value is None:
            return await self._command('GET', '/url')
        await self._command('POST', '/url', {'url': value})
        return None

    async def refresh(self) -> None:
        await self._command('POST', '/refresh')

    async def get_title(self) -> str:
        return await self._command('GET', '/title')

    async def get_source(self) -> str:
        return await self._command('GET', '/source')

    # -- Tabs and windows --------------------------------------------------------

    async def get_current_tab_id(self) -> str:
        return await self._command('GET', '/window')

    async def get_tab_ids(self) -> list[str]:
        return list(await self._command('GET', '/window/handles') or [])

    async def window_handles(self) -> list[str]:
        return await self.get_tab_ids()

    async def switch_tab(self, tab_id: str) -> None:
        await self._command('POST', '/window', {'handle': tab_id})

    async def window(self, handle: str) -> None:
        await self.switch_tab(handle)

    async def close(self, tab_id: str | None = None) -> list[str]:
        """Close tab_id (or the current tab). Returns the remaining tab ids."""
        if tab_id is not None:
            await self.switch_tab(tab_id)
        return list(await self._command('DELETE', '/window') or [])

    async def new_window(self, url: str, window_name: str = '', window_features: dict | None = None) -> str:
        """Open url in a new window and switch to it. Returns its id."""
        before = set(await self.get_tab_ids())
        features = ','.join(f'{key}={value}' for key, value in (window_features or {}).items())
        await self.execute(_NEW_WINDOW_SCRIPT, url, window_name, features)
        opened = [tab for tab in await self.get_tab_ids() if tab not in before]
        if not opened:
            raise DriverError(f'New window for {url} did not open', 'no such window')
        await self.switch_tab(opened[-1])
        return opened[-1]

    async def window_handle_maximize(self) -> None:
        await self._command('POST', '/window/maximize')

    async def frame(self, frame_id: int | str | None = None) -> None:
        if isinstance(frame_id, str):
            frame_ref: Any = element_ref(await self._find(frame_id))
        else:
            frame_ref = frame_id
        await self._command('POST', '/frame', {'id': frame_ref})

    async def frame_parent(self) -> None:
        await self._command('POST', '/frame/parent')

    # -- Alerts ------------------------------------------------------------------

    async def alert_text(self) -> str:
        return await self._command('GET', '/alert/text')

    async def alert_accept(self) -> None:
        await self._command('POST', '/alert/accept')

    async def alert_dismiss(self) -> None:
        await self._command('POST', '/alert/dismiss')

    async def is_alert_open(self) -> bool:
        try:
            await self.alert_text()
            return True
        except DriverError as exc:
            if exc.error == 'no such alert':
                return False
            raise

    # -- Cookies -----------------------------------------------------------------

    async def set_cookie(self, cookie: dict) -> None:
        await self._command('POST', '/cookie', {'cookie': cookie})

    async def get_cookie(self, name: str | None = None) -> Any:
        if name is None:
            return await self._command('GET', '/cookie')
        return await self._command('GET', f'/cookie/{name}')

    async def delete_cookie(self, name: str | None = None) -> None:
        if name is None:
            await self._command('DELETE', '/cookie')
        else:
            await self._command('DELETE', f'/cookie/{name}')

    # -- Scripts and screenshots -------------------------------------------------

    async def execute(self, script: str, *args: Any) -> Any:
        """Run script (a function body using `arguments`) and return its result."""
        return await self._command('POST', '/execute/sync', {'script': script, 'args': list(args)})

    async def execute_async(self, script: str, *args: Any) -> Any:
        """Run callback-style script; the last entry of `arguments` is the callback."""
        return await self._command('POST', '/execute/async', {'script': script, 'args': list(args)})

    async def make_screenshot(self) -> str:
        """Base64-encoded PNG of the current viewport."""
        return await self._command('GET', '/screenshot')


def element_ref(element_id: str) -> dict:
    """Web element reference for script arguments."""
    return {ELEMENT_KEY: element_id}


def _pointer(actions: list[dict]) -> dict:
    return {
        'type': 'pointer',
        'id': 'mouse',
        'parameters': {'pointerType': 'mouse'},
        'actions': actions,
    }


def _move_to(element_id: str, x: int, y: int) -> dict:
    return {
        'type': 'pointerMove',
        'duration': 0,
        'origin': element_ref(element_id),
        'x': x,
        'y': y,
    }
