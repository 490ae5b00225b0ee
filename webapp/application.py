"""Session-level browser operations for end-to-end tests.

WebApplication wraps one driver session. Every operation listed in
STEP_MESSAGES runs through the ActionEngine: it is logged as a step,
honours the process-wide breakpoints, can have its error message replaced
with if_error(), and triggers the screenshot policy when it finishes.

    app = WebApplication('checkout-test', client, Config.load())
    await app.open_page('https://shop.example/cart')
    await app.click(app.root.cart.checkout).if_error('Checkout button missing')
    total = await app.get_text(app.root.cart.total)
    await app.assert_.equal(total, '$10.00')

Timeouts are in milliseconds; None means config.wait_timeout_ms.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import math
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from webapp import page_scripts
from webapp.assertions import Assertion, AssertionMeta
from webapp.breakpoints import AsyncBreakpoints
from webapp.config import SCREENSHOTS_AFTER_ERROR, Config
from webapp.errors import ElementNotFoundError, WaitTimeoutError, WebAppError
from webapp.instrument import Action, ActionEngine, ExecutionContext, PendingResult
from webapp.polling import now_ms, poll_until
from webapp.screenshots import ScreenshotWriter, decode_screenshot
from webapp.selectors import ROOT, ElementPath, format_selector, normalize_selector, xpath_literal
from webapp.step_logger import DEFAULT_PREFIX, LOG_TYPE_SCREENSHOT, StepLogger
from webapp.tabs import TabTracker

log = logging.getLogger(__name__)

Selector = ElementPath | str | None

READ_ONLY_INPUT_TAGS = ('input', 'select', 'textarea')

DOCUMENT_READY_TICK_MS = 200
DOCUMENT_READY_ATTEMPTS = 1000


def _fmt(selector: Selector) -> str:
    return format_selector(selector)


def _with_message(error: BaseException, message: str) -> BaseException:
    error.args = (message,)
    return error


# Step message per instrumented operation. Each function receives the
# application followed by the operation's own arguments.
STEP_MESSAGES: dict[str, Callable[..., str]] = {
    'wait_for_root': lambda app, timeout=None: (
        f'Waiting for root element for {app.timeout(timeout)}'
    ),
    'wait_for_exist': lambda app, selector, timeout=None, skip_move_to_object=False: (
        f'Waiting {_fmt(selector)} for {app.timeout(timeout)}'
    ),
    'wait_for_not_exists': lambda app, selector, timeout=None: (
        f'Waiting not exists {_fmt(selector)} for {app.timeout(timeout)}'
    ),
    'wait_for_visible': lambda app, selector, timeout=None, skip_move_to_object=False: (
        f'Waiting for visible {_fmt(selector)} for {app.timeout(timeout)}'
    ),
    'wait_for_not_visible': lambda app, selector, timeout=None: (
        f'Waiting for not visible {_fmt(selector)} for {app.timeout(timeout)}'
    ),
    'open_page': lambda app, page, timeout=None: (
        f'Opening page uri: {page}' if isinstance(page, str) else 'Opening page'
    ),
    'is_become_visible': lambda app, selector, timeout=None: (
        f'Waiting for become visible {_fmt(selector)} for {app.timeout(timeout)}'
    ),
    'is_become_hidden': lambda app, selector, timeout=None: (
        f'Waiting for become hidden {_fmt(selector)} for {app.timeout(timeout)}'
    ),
    'click': lambda app, selector, timeout=None: f'Click on {_fmt(selector)}',
    'click_button': lambda app, selector, timeout=None: (
        f'Click on {_fmt(selector)} in the middle'
    ),
    'click_coordinates': lambda app, selector, options=None, timeout=None: (
        f'Click on {_fmt(selector)} in {json.dumps(options or {"x": 1, "y": 1})}'
    ),
    'get_value': lambda app, selector, timeout=None: f'Get value from {_fmt(selector)}',
    'set_value': lambda app, selector, value, emulate_via_js=False, timeout=None: (
        f'Set value {value} to {_fmt(selector)}'
    ),
    'clear_element': lambda app, selector, emulate_via_js=False, timeout=None: (
        f'Clear element {_fmt(selector)}'
    ),
    'get_text': lambda app, selector, trim=True, timeout=None: f'Get text from {_fmt(selector)}',
    'get_text_without_focus': lambda app, selector, timeout=None: (
        f'Get tooltip text from {_fmt(selector)}'
    ),
    'get_texts': lambda app, selector, trim=True, timeout=None: f'Get texts from {_fmt(selector)}',
    'get_options_property': lambda app, selector, prop, timeout=None: (
        f'Get options {prop} {_fmt(selector)}'
    ),
    'select_by_index': lambda app, selector, value, timeout=None: (
        f'Select by index {_fmt(selector)} {value}'
    ),
    'select_by_value': lambda app, selector, value, timeout=None: (
        f'Select by value {_fmt(selector)} {value}'
    ),
    'select_by_visible_text': lambda app, selector, value, timeout=None: (
        f'Select by visible text {_fmt(selector)} {value}'
    ),
    'select_by_attribute': lambda app, selector, attribute, value, timeout=None: (
        f'Select by attribute {attribute} with value {value} from {_fmt(selector)}'
    ),
    'get_selected_text': lambda app, selector, timeout=None: (
        f'Get selected text {_fmt(selector)}'
    ),
    'is_checked': lambda app, selector, timeout=None: f'Is checked {_fmt(selector)}',
    'set_checked': lambda app, selector, checked=True, timeout=None: (
        f'Set checked {_fmt(selector)} {bool(checked)}'
    ),
    'is_visible': lambda app, selector, timeout=None: f'Is visible {_fmt(selector)}',
    'get_attribute': lambda app, selector, attr, timeout=None: (
        f'Get attribute {attr} from {_fmt(selector)}'
    ),
    'is_disabled': lambda app, selector, timeout=None: f'Is disabled {_fmt(selector)}',
    'is_read_only': lambda app, selector, timeout=None: f'Is read only {_fmt(selector)}',
    'is_enabled': lambda app, selector, timeout=None: (
        f"Get attributes 'enabled' from {_fmt(selector)}"
    ),
    'is_css_class_exists': lambda app, selector, *classes: (
        f"Checking classes {', '.join(classes)} exist in {_fmt(selector)}"
    ),
    'move_to_object': lambda app, selector, x=1, y=1, timeout=None: (
        f'Move cursor to {_fmt(selector)} points ({x}, {y})'
    ),
    'scroll': lambda app, selector, x=0, y=0, timeout=None: (
        f'Scroll {_fmt(selector)} to ({x}, {y})'
    ),
    'drag_and_drop': lambda app, source, destination, timeout=None: (
        f'dragAndDrop {_fmt(source)} to {_fmt(destination)}'
    ),
    'elements': lambda app, selector: f'elements {_fmt(selector)}',
    'get_elements_count': lambda app, selector, timeout=None: (
        f'Get elements count {_fmt(selector)}'
    ),
    'get_html': lambda app, selector, timeout=None: f'Get HTML from {_fmt(selector)}',
    'set_active_tab': lambda app, tab_id: f'Switching to tab {tab_id}',
    'get_css_property': lambda app, selector, css_property, timeout=None: (
        f'Get CSS property {css_property} from {_fmt(selector)}'
    ),
    'get_source': lambda app: 'Get source of current page',
    'wait_for_value': lambda app, selector, timeout=None, reverse=False: (
        f"Waiting for element {_fmt(selector)} doesn't has value for {app.timeout(timeout)}"
        if reverse else
        f'Waiting for any value of {_fmt(selector)} for {app.timeout(timeout)}'
    ),
    'wait_for_selected': lambda app, selector, timeout=None, reverse=False: (
        f"Waiting for element {_fmt(selector)} isn't selected for {app.timeout(timeout)}"
        if reverse else
        f'Waiting for element {_fmt(selector)} is selected for {app.timeout(timeout)}'
    ),
    'wait_until': lambda app, condition, timeout=None, timeout_msg=None, interval=500: (
        f'Waiting by condition for {app.timeout(timeout)}'
    ),
}


class WebApplication:
    """Instrumented operations on one browser session.

    Args:
        test_uid: Test identifier; screenshots go to <screenshot_path>/<test_uid>/.
        client: Driver session (WebDriverClient or compatible).
        config: Defaults to Config().
        logger: Step logger; a '[web-application]' StepLogger by default.
        breakpoints: Breakpoint controller; the process-wide one by default.
        screenshot_writer: Defaults to a writer bounded by
            config.max_write_thread_count.
    """

    def __init__(
        self,
        test_uid: str,
        client: Any,
        config: Config | None = None,
        *,
        logger: StepLogger | None = None,
        breakpoints: AsyncBreakpoints | None = None,
        screenshot_writer: ScreenshotWriter | None = None,
    ) -> None:
        self.test_uid = test_uid
        self.client = client
        self.config = config or Config()
        self.logger = logger or StepLogger(DEFAULT_PREFIX)
        self.root = ROOT
        self.context = ExecutionContext()
        self.tabs = TabTracker(client)

        self._screenshot_writer = screenshot_writer or ScreenshotWriter(
            self.config.max_write_thread_count,
        )
        self._screenshots_enabled_manually = True
        self._session_stopped = False

        self._engine = ActionEngine(
            self.context,
            self.logger,
            breakpoints,
            on_success=self._after_success,
            on_failure=self._after_failure,
        )
        for name, display in STEP_MESSAGES.items():
            self._engine.register(Action(
                name=name,
                origin=getattr(self, f'_{name}'),
                display=functools.partial(display, self),
            ))

        self.assert_ = Assertion(
            on_success=self._assertion_success,
            on_error=self._assertion_error,
        )
        self.soft_assert = Assertion(
            is_soft=True,
            on_success=self._assertion_success,
            on_error=self._assertion_error,
        )

    def timeout(self, timeout: float | None) -> float:
        return self.config.wait_timeout_ms if timeout is None else timeout

    def _call(self, name: str, *args: Any, **kwargs: Any) -> PendingResult:
        return self._engine.call(name, *args, **kwargs)

    # ------------------------------------------------------------------
    # Action hooks
    # ------------------------------------------------------------------

    async def _after_success(self, action_name: str) -> None:
        await self.make_screenshot()

    async def _after_failure(self, error: BaseException) -> None:
        self.logger.error('%s', error)
        await self.make_screenshot(force=True)

    async def _assertion_success(self, meta: AssertionMeta) -> None:
        if meta.success_message:
            async def report() -> None:
                await self.make_screenshot()
                self.logger.debug(meta.assert_message)

            await self.logger.step_success(meta.success_message, report)
        else:
            await self.logger.step_success(meta.assert_message, self._screenshot_callback)

    async def _assertion_error(self, meta: AssertionMeta) -> None:
        if meta.success_message:
            async def report() -> None:
                self.logger.error(meta.assert_message)
                await self.make_screenshot()

            await self.logger.step_error(meta.success_message, report)
        else:
            await self.logger.step_error(meta.assert_message, self._screenshot_callback)

    async def _screenshot_callback(self) -> None:
        await self.make_screenshot()

    def get_soft_assertion_errors(self) -> list[str]:
        return list(self.soft_assert.error_messages)

    # ------------------------------------------------------------------
    # Screenshots
    # ------------------------------------------------------------------

    def disable_screenshots(self) -> None:
        self.logger.debug('Screenshots were disabled. DO NOT FORGET to turn them on back!')
        self._screenshots_enabled_manually = False

    def enable_screenshots(self) -> None:
        self.logger.debug('Screenshots were enabled')
        self._screenshots_enabled_manually = True

    async def make_screenshot(self, force: bool = False) -> str | None:
        """Capture the viewport. Returns the file path, or None when the policy skips it.

        force bypasses a manual disable_screenshots() and the after-error-only
        mode, but never config.screenshots == 'disable'.
        """
        if not self.config.screenshots_enabled:
            return None
        if not force:
            if self.config.screenshots == SCREENSHOTS_AFTER_ERROR:
                return None
            if not self._screenshots_enabled_manually:
                return None

        payload = await self.client.make_screenshot()
        directory = Path(self.config.screenshot_path) / self.test_uid
        path = await self._screenshot_writer.write(decode_screenshot(payload), directory, ext='png')
        self.logger.file(path, LOG_TYPE_SCREENSHOT)
        return path

    # ------------------------------------------------------------------
    # Devtool highlight
    # ------------------------------------------------------------------

    async def _devtool_highlight(self, selector: Selector, multiple: bool = False) -> None:
        if self.config.devtool is None:
            return
        xpath = normalize_selector(selector, multiple) if selector is not None else None
        try:
            await self.client.execute(page_scripts.HIGHLIGHT, xpath)
        except Exception as exc:
            self.logger.error('Failed to highlight element: %s', exc)

    # ------------------------------------------------------------------
    # Waits
    # ------------------------------------------------------------------

    def wait_for_root(self, timeout: float | None = None) -> PendingResult:
        return self._call('wait_for_root', timeout)

    async def _wait_for_root(self, timeout=None):
        return await self.client.wait_for_exist(ROOT.to_xpath(), self.timeout(timeout))

    def wait_for_exist(self, selector: Selector, timeout: float | None = None,
                       skip_move_to_object: bool = False) -> PendingResult:
        return self._call('wait_for_exist', selector, timeout, skip_move_to_object)

    async def _wait_for_exist(self, selector, timeout=None, skip_move_to_object=False):
        await self._devtool_highlight(selector)

        xpath = normalize_selector(selector)
        exists = await self.client.wait_for_exist(xpath, self.timeout(timeout))

        if not skip_move_to_object:
            try:
                await self._scroll_into_view_call(selector, only_if_needed=True)
                await self.client.move_to_object(xpath, 1, 1)
            except Exception as exc:
                log.debug('Could not bring %s into view: %s', xpath, exc)
        return exists

    def wait_for_not_exists(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('wait_for_not_exists', selector, timeout)

    async def _wait_for_not_exists(self, selector, timeout=None):
        xpath = normalize_selector(selector)
        try:
            await self.client.wait_for_exist(xpath, self.timeout(timeout))
        except WebAppError:
            return True
        raise WebAppError(f'Wait for not exists failed, element {_fmt(selector)} is exists')

    def wait_for_visible(self, selector: Selector, timeout: float | None = None,
                         skip_move_to_object: bool = False) -> PendingResult:
        return self._call('wait_for_visible', selector, timeout, skip_move_to_object)

    async def _wait_for_visible(self, selector, timeout=None, skip_move_to_object=False):
        timeout = self.timeout(timeout)
        started = now_ms()

        await self.wait_for_exist(selector, timeout, skip_move_to_object)

        remaining = timeout - (now_ms() - started)
        if remaining <= 0:
            raise WaitTimeoutError(f'Wait for visible failed, element not exists after {timeout}ms')

        return await self.client.wait_for_visible(normalize_selector(selector), remaining)

    def wait_for_not_visible(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('wait_for_not_visible', selector, timeout)

    async def _wait_for_not_visible(self, selector, timeout=None):
        path = _fmt(selector)
        timeout = self.timeout(timeout)
        expires = now_ms() + timeout
        xpath = normalize_selector(selector)

        try:
            await self.wait_for_root(timeout)
        except WebAppError as exc:
            raise ElementNotFoundError(
                'Wait for not visible is failed, root element is still pending'
            ) from exc

        async def hidden() -> bool:
            return not await self.client.is_visible(xpath)

        if await poll_until(hidden, max(expires - now_ms(), 0), self.config.tick_ms):
            return False
        raise WaitTimeoutError(f'Wait for not visible failed, element {path} is visible')

    def is_become_visible(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('is_become_visible', selector, timeout)

    async def _is_become_visible(self, selector, timeout=None):
        try:
            await self.client.wait_for_visible(normalize_selector(selector), self.timeout(timeout))
        except WebAppError:
            return False
        return True

    def is_become_hidden(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('is_become_hidden', selector, timeout)

    async def _is_become_hidden(self, selector, timeout=None):
        xpath = normalize_selector(selector)

        async def hidden() -> bool:
            return not await self.client.is_visible(xpath)

        return await poll_until(hidden, self.timeout(timeout), self.config.tick_ms)

    def wait_for_value(self, selector: Selector, timeout: float | None = None,
                       reverse: bool = False) -> PendingResult:
        return self._call('wait_for_value', selector, timeout, reverse)

    async def _wait_for_value(self, selector, timeout=None, reverse=False):
        return await self.client.wait_for_value(
            normalize_selector(selector), self.timeout(timeout), reverse,
        )

    def wait_for_selected(self, selector: Selector, timeout: float | None = None,
                          reverse: bool = False) -> PendingResult:
        return self._call('wait_for_selected', selector, timeout, reverse)

    async def _wait_for_selected(self, selector, timeout=None, reverse=False):
        return await self.client.wait_for_selected(
            normalize_selector(selector), self.timeout(timeout), reverse,
        )

    def wait_until(self, condition: Callable[[], Awaitable[Any] | Any], timeout: float | None = None,
                   timeout_msg: str | None = None, interval: float = 500) -> PendingResult:
        return self._call('wait_until', condition, timeout, timeout_msg, interval)

    async def _wait_until(self, condition, timeout=None, timeout_msg=None, interval=500):
        return await self.client.wait_until(
            condition, self.timeout(timeout), timeout_msg or 'Wait by condition failed!', interval,
        )

    async def wait_for_alert(self, timeout: float | None = None) -> bool:
        async def alert_open() -> bool:
            await self.client.alert_text()
            return True

        return await poll_until(
            alert_open, self.timeout(timeout), self.config.tick_ms, tolerate_errors=True,
        )

    async def pause(self, timeout: float) -> None:
        self.logger.verbose('delay for %sms', timeout)
        await asyncio.sleep(timeout / 1000)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def open_page(self, page: str, timeout: float | None = None) -> PendingResult:
        return self._call('open_page', page, timeout)

    async def _open_page(self, page, timeout=None):
        timeout = self.config.page_load_timeout_ms if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._open_page_from_uri(page), timeout / 1000)
        except asyncio.TimeoutError as exc:
            if isinstance(exc, WebAppError):
                raise
            raise WaitTimeoutError(f'Page open timeout: {page}') from None

    async def _open_page_from_uri(self, uri: str) -> None:
        previous = await self.client.url()

        await self.client.url(uri)
        if previous and _url_path(previous) == _url_path(uri):
            await self.client.refresh()
        await self.log_navigator_version()
        await self._document_ready_wait()

    async def _document_ready_wait(self) -> None:
        ready = await poll_until(
            lambda: self.client.execute(page_scripts.DOCUMENT_READY),
            DOCUMENT_READY_ATTEMPTS * DOCUMENT_READY_TICK_MS,
            DOCUMENT_READY_TICK_MS,
        )
        if not ready:
            raise WaitTimeoutError('Failed to wait for the page load')

    async def log_navigator_version(self) -> str | None:
        user_agent = await self.client.execute(page_scripts.USER_AGENT)
        self.logger.debug('%s', user_agent)
        return user_agent

    async def url(self, value: str | None = None) -> str | None:
        return await self.client.url(value)

    async def refresh(self) -> None:
        await self.client.refresh()

    async def get_title(self) -> str:
        return await self.client.get_title()

    def get_source(self) -> PendingResult:
        return self._call('get_source')

    async def _get_source(self):
        return await self.client.get_source()

    # ------------------------------------------------------------------
    # Clicks and pointer
    # ------------------------------------------------------------------

    def click(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('click', selector, timeout)

    async def _click(self, selector, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        return await self.client.click(xpath, 1, 1)

    def click_button(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('click_button', selector, timeout)

    async def _click_button(self, selector, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        return await self.client.click(xpath, button='middle')

    def click_coordinates(self, selector: Selector, options: dict | None = None,
                          timeout: float | None = None) -> PendingResult:
        """Click at options={'x': ..., 'y': ...} inside the element.

        x accepts a pixel offset or 'left'/'center'/'right', y a pixel
        offset or 'top'/'center'/'bottom'. Missing axes default to 1.
        """
        return self._call('click_coordinates', selector, options, timeout)

    async def _click_coordinates(self, selector, options=None, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)

        options = options or {}
        x, y = options.get('x', 1), options.get('y', 1)
        if isinstance(x, str) or isinstance(y, str):
            size = await self.client.get_size(xpath)
            x = _anchor(x, size['width'], {'left': 0, 'right': size['width']})
            y = _anchor(y, size['height'], {'top': 0, 'bottom': size['height']})

        return await self.client.click(xpath, x, y)

    def move_to_object(self, selector: Selector, x: float = 1, y: float = 1,
                       timeout: float | None = None) -> PendingResult:
        return self._call('move_to_object', selector, x, y, timeout)

    async def _move_to_object(self, selector, x=1, y=1, timeout=None):
        await self.scroll_into_view_if_needed(selector, timeout=timeout)
        return await self.client.move_to_object(normalize_selector(selector), x, y)

    def drag_and_drop(self, source: Selector, destination: Selector,
                      timeout: float | None = None) -> PendingResult:
        return self._call('drag_and_drop', source, destination, timeout)

    async def _drag_and_drop(self, source, destination, timeout=None):
        await self.wait_for_exist(source, timeout)
        await self.wait_for_exist(destination, timeout)
        return await self.client.drag_and_drop(
            normalize_selector(source), normalize_selector(destination),
        )

    def scroll(self, selector: Selector, x: int = 0, y: int = 0,
               timeout: float | None = None) -> PendingResult:
        return self._call('scroll', selector, x, y, timeout)

    async def _scroll(self, selector, x=0, y=0, timeout=None):
        await self.wait_for_exist(selector, timeout, True)
        return await self.client.scroll(normalize_selector(selector), x, y)

    async def scroll_into_view(self, selector: Selector, top_offset: int = 0, left_offset: int = 0,
                               timeout: float | None = None) -> None:
        await self.wait_for_exist(selector, timeout, True)
        await self._scroll_into_view_call(selector, top_offset, left_offset)

    async def scroll_into_view_if_needed(self, selector: Selector, top_offset: int = 0,
                                         left_offset: int = 0, timeout: float | None = None) -> None:
        await self.wait_for_exist(selector, timeout, True)
        await self._scroll_into_view_call(selector, top_offset, left_offset, only_if_needed=True)

    async def _scroll_into_view_call(self, selector: Selector, top_offset: int = 0,
                                     left_offset: int = 0, only_if_needed: bool = False) -> None:
        xpath = normalize_selector(selector)
        if not only_if_needed and not (top_offset or left_offset):
            await self.client.scroll_into_view(xpath)
            return

        error = await self.client.execute_async(
            page_scripts.SCROLL_INTO_VIEW, xpath, top_offset, left_offset, only_if_needed,
        )
        if error:
            raise WebAppError(error)

    async def keys(self, value: str | list[str]) -> None:
        self.logger.debug('Send keys %s', value)
        await self.client.keys(value)

    # ------------------------------------------------------------------
    # Values and text
    # ------------------------------------------------------------------

    def get_value(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('get_value', selector, timeout)

    async def _get_value(self, selector, timeout=None):
        await self.wait_for_exist(selector, timeout)
        return await self.client.get_value(normalize_selector(selector))

    def set_value(self, selector: Selector, value: Any, emulate_via_js: bool = False,
                  timeout: float | None = None) -> PendingResult:
        """Type value into the field. Empty values ('' or None) clear it."""
        return self._call('set_value', selector, value, emulate_via_js, timeout)

    async def _set_value(self, selector, value, emulate_via_js=False, timeout=None):
        if value is None or value == '':
            await self.clear_element(selector, emulate_via_js, timeout)
            return

        await self.wait_for_exist(selector, timeout)
        xpath = normalize_selector(selector)

        if emulate_via_js:
            await self.simulate_js_field_change(xpath, value)
            self.logger.debug('Value %s was entered into %s using JS emulation', value, _fmt(selector))
        else:
            await self.client.set_value(xpath, value)
            self.logger.debug('Value %s was entered into %s using WebDriver', value, _fmt(selector))

    def clear_element(self, selector: Selector, emulate_via_js: bool = False,
                      timeout: float | None = None) -> PendingResult:
        return self._call('clear_element', selector, emulate_via_js, timeout)

    async def _clear_element(self, selector, emulate_via_js=False, timeout=None):
        await self.wait_for_exist(selector, timeout)
        xpath = normalize_selector(selector)

        if emulate_via_js:
            return await self.simulate_js_field_clear(xpath)

        # Typing and erasing a character makes frameworks that only listen
        # to key events notice the cleared value.
        await self.client.set_value(xpath, ' ')
        await self.wait_for_exist(xpath, timeout)
        return await self.client.keys(['Backspace'])

    async def simulate_js_field_change(self, selector: Selector, value: Any) -> None:
        error = await self.client.execute_async(
            page_scripts.FIELD_CHANGE, normalize_selector(selector), value,
        )
        if error:
            raise WebAppError(error)

    async def simulate_js_field_clear(self, selector: Selector) -> None:
        await self.simulate_js_field_change(selector, '')

    def get_text(self, selector: Selector, trim: bool = True,
                 timeout: float | None = None) -> PendingResult:
        return self._call('get_text', selector, trim, timeout)

    async def _get_text(self, selector, trim=True, timeout=None):
        await self.wait_for_exist(selector, timeout)
        text = ' '.join(await self._get_texts_internal(selector, trim))
        self.logger.debug('Get text from %s returns "%s"', _fmt(selector), text)
        return text

    def get_text_without_focus(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('get_text_without_focus', selector, timeout)

    async def _get_text_without_focus(self, selector, timeout=None):
        await self.wait_for_exist(selector, timeout, True)
        text = ' '.join(await self._get_texts_internal(selector, True))
        self.logger.debug('Get tooltip text from %s returns "%s"', _fmt(selector), text)
        return text

    def get_texts(self, selector: Selector, trim: bool = True,
                  timeout: float | None = None) -> PendingResult:
        return self._call('get_texts', selector, trim, timeout)

    async def _get_texts(self, selector, trim=True, timeout=None):
        await self.wait_for_exist(selector, timeout)
        texts = await self._get_texts_internal(selector, trim, allow_multiple=True)
        self.logger.debug('Get texts from %s returns "%s"', _fmt(selector), '\n'.join(texts))
        return texts

    async def _get_texts_internal(self, selector: Selector, trim: bool,
                                  allow_multiple: bool = False) -> list[str]:
        await self._devtool_highlight(selector, allow_multiple)

        xpath = normalize_selector(selector, allow_multiple)
        texts = []
        for element_id in await self.client.elements(xpath):
            text = await self.client.element_text(element_id)
            texts.append(text.strip() if trim else text)
        return texts

    def get_options_property(self, selector: Selector, prop: str,
                             timeout: float | None = None) -> PendingResult:
        return self._call('get_options_property', selector, prop, timeout)

    async def _get_options_property(self, selector, prop, timeout=None):
        await self.wait_for_exist(selector, timeout)
        return await self.client.execute(
            page_scripts.OPTIONS_PROPERTY, normalize_selector(selector), prop,
        )

    async def get_select_texts(self, selector: Selector, trim: bool = True,
                               timeout: float | None = None) -> list[str]:
        texts = await self.get_options_property(selector, 'text', timeout)
        if not texts:
            return []
        return [text.strip() for text in texts] if trim else list(texts)

    async def get_select_values(self, selector: Selector, timeout: float | None = None) -> list[str]:
        return list(await self.get_options_property(selector, 'value', timeout) or [])

    async def get_placeholder_value(self, selector: Selector) -> str | None:
        return await self.get_attribute(selector, 'placeholder')

    def get_html(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('get_html', selector, timeout)

    async def _get_html(self, selector, timeout=None):
        await self.wait_for_exist(selector, timeout)
        return await self.client.get_html(normalize_selector(selector), True)

    async def get_size(self, selector: Selector, timeout: float | None = None) -> dict:
        await self.wait_for_exist(selector, timeout)
        return await self.client.get_size(normalize_selector(selector))

    # ------------------------------------------------------------------
    # Select boxes
    # ------------------------------------------------------------------

    def select_by_index(self, selector: Selector, value: int | str,
                        timeout: float | None = None) -> PendingResult:
        return self._call('select_by_index', selector, value, timeout)

    async def _select_by_index(self, selector, value, timeout=None):
        message = f'Could not select by index "{value}": {_fmt(selector)}'
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        try:
            return await self.client.select_by_index(xpath, value)
        except WebAppError as exc:
            raise _with_message(exc, message)

    def select_by_value(self, selector: Selector, value: Any,
                        timeout: float | None = None) -> PendingResult:
        return self._call('select_by_value', selector, value, timeout)

    async def _select_by_value(self, selector, value, timeout=None):
        message = f'Could not select by value "{value}": {_fmt(selector)}'
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        try:
            return await self.client.select_by_value(xpath, value)
        except WebAppError as exc:
            raise _with_message(exc, message)

    def select_by_visible_text(self, selector: Selector, value: Any,
                               timeout: float | None = None) -> PendingResult:
        return self._call('select_by_visible_text', selector, value, timeout)

    async def _select_by_visible_text(self, selector, value, timeout=None):
        message = f'Could not select by visible text "{value}": {_fmt(selector)}'
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        try:
            return await self.client.select_by_visible_text(xpath, str(value))
        except WebAppError as exc:
            raise _with_message(exc, message)

    def select_by_attribute(self, selector: Selector, attribute: str, value: str,
                            timeout: float | None = None) -> PendingResult:
        return self._call('select_by_attribute', selector, attribute, value, timeout)

    async def _select_by_attribute(self, selector, attribute, value, timeout=None):
        message = f'Could not select by attribute "{attribute}" with value "{value}": {_fmt(selector)}'
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        try:
            return await self.client.select_by_attribute(xpath, attribute, value)
        except WebAppError as exc:
            raise _with_message(exc, message)

    async def select_not_current(self, selector: Selector, timeout: float | None = None) -> None:
        """Select the first option whose value differs from the current one."""
        options = await self.get_select_values(selector, timeout)
        current = await self.client.get_value(normalize_selector(selector))
        others = [option for option in options if option != current]
        if not others:
            raise WebAppError(f'No other option to select in {_fmt(selector)}')
        await self.select_by_value(selector, others[0])

    def get_selected_text(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('get_selected_text', selector, timeout)

    async def _get_selected_text(self, selector, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)

        value = await self.client.get_value(xpath)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            option = f'{xpath}//option[@value={xpath_literal(str(value))}]'
            try:
                return await self.client.get_text(option) or ''
            except WebAppError as exc:
                log.debug('No option text for value %r in %s: %s', value, xpath, exc)
        return ''

    # ------------------------------------------------------------------
    # Element state
    # ------------------------------------------------------------------

    def is_checked(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('is_checked', selector, timeout)

    async def _is_checked(self, selector, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        return bool(await self.client.is_selected(xpath))

    def set_checked(self, selector: Selector, checked: bool = True,
                    timeout: float | None = None) -> PendingResult:
        return self._call('set_checked', selector, checked, timeout)

    async def _set_checked(self, selector, checked=True, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)

        if bool(await self.client.is_selected(xpath)) != bool(checked):
            await self.client.click(xpath)

    def is_visible(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('is_visible', selector, timeout)

    async def _is_visible(self, selector, timeout=None):
        await self.wait_for_root(timeout)
        return await self.client.is_visible(normalize_selector(selector))

    async def is_existing(self, selector: Selector) -> bool:
        return await self.client.is_existing(normalize_selector(selector))

    def get_attribute(self, selector: Selector, attr: str, timeout: float | None = None) -> PendingResult:
        return self._call('get_attribute', selector, attr, timeout)

    async def _get_attribute(self, selector, attr, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)
        return await self.client.get_attribute(xpath, attr)

    def get_css_property(self, selector: Selector, css_property: str,
                         timeout: float | None = None) -> PendingResult:
        return self._call('get_css_property', selector, css_property, timeout)

    async def _get_css_property(self, selector, css_property, timeout=None):
        await self.wait_for_exist(selector, timeout)
        return await self.client.get_css_property(normalize_selector(selector), css_property)

    def is_css_class_exists(self, selector: Selector, *classes: str) -> PendingResult:
        return self._call('is_css_class_exists', selector, *classes)

    async def _is_css_class_exists(self, selector, *classes):
        present = (await self.get_attribute(selector, 'class') or '').lower().split()
        return any(name.lower() in present for name in classes)

    def is_read_only(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('is_read_only', selector, timeout)

    async def _is_read_only(self, selector, timeout=None):
        xpath = normalize_selector(selector)
        await self.wait_for_exist(xpath, timeout)

        readonly = await self.client.get_attribute(xpath, 'readonly')
        tag_name = (await self.client.get_tag_name(xpath) or '').lower()
        if readonly in ('true', 'readonly', 'readOnly') or tag_name not in READ_ONLY_INPUT_TAGS:
            return True

        disabled = await self.client.get_attribute(xpath, 'disabled')
        return disabled in ('true', 'disabled')

    def is_enabled(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('is_enabled', selector, timeout)

    async def _is_enabled(self, selector, timeout=None):
        await self.wait_for_exist(selector, timeout)
        return await self.client.is_enabled(normalize_selector(selector))

    def is_disabled(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('is_disabled', selector, timeout)

    async def _is_disabled(self, selector, timeout=None):
        return not await self.is_enabled(selector, timeout)

    async def is_element_selected(self, element_id: str) -> bool:
        return bool(await self.client.element_selected(str(element_id)))

    # ------------------------------------------------------------------
    # Element collections
    # ------------------------------------------------------------------

    def elements(self, selector: Selector) -> PendingResult:
        return self._call('elements', selector)

    async def _elements(self, selector):
        await self._devtool_highlight(selector, True)
        return await self.client.elements(normalize_selector(selector, True))

    def get_elements_count(self, selector: Selector, timeout: float | None = None) -> PendingResult:
        return self._call('get_elements_count', selector, timeout)

    async def _get_elements_count(self, selector, timeout=None):
        await self.wait_for_root(timeout)
        return len(await self.elements(selector))

    async def get_elements_ids(self, selector: Selector, timeout: float | None = None) -> list[str]:
        await self.wait_for_exist(selector, timeout)
        return list(await self.elements(selector))

    async def not_exists(self, selector: Selector, timeout: float | None = None) -> bool:
        return await self.get_elements_count(selector, timeout) == 0

    async def is_elements_exist(self, selector: Selector, timeout: float | None = None) -> bool:
        return await self.get_elements_count(selector, timeout) > 0

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def is_alert_open(self) -> bool:
        return await self.client.is_alert_open()

    async def alert_accept(self, timeout: float | None = None) -> None:
        await self.wait_for_alert(timeout)
        await self.client.alert_accept()

    async def alert_dismiss(self, timeout: float | None = None) -> None:
        await self.wait_for_alert(timeout)
        await self.client.alert_dismiss()

    async def alert_text(self, timeout: float | None = None) -> str:
        await self.wait_for_alert(timeout)
        return await self.client.alert_text()

    # ------------------------------------------------------------------
    # Tabs, windows and frames
    # ------------------------------------------------------------------

    def set_active_tab(self, tab_id: str) -> PendingResult:
        return self._call('set_active_tab', tab_id)

    async def _set_active_tab(self, tab_id):
        await self.tabs.set_active_tab(tab_id)

    async def get_main_tab_id(self) -> str:
        return await self.tabs.get_main_tab_id()

    async def get_tab_ids(self) -> list[str]:
        return await self.tabs.get_tab_ids()

    async def get_current_tab_id(self) -> str:
        return await self.tabs.get_current_tab_id()

    async def switch_tab(self, tab_id: str) -> None:
        await self.tabs.switch_tab(tab_id)

    async def window(self, handle: str) -> None:
        await self.tabs.switch_tab(handle)

    async def window_handles(self) -> list[str]:
        return await self.client.window_handles()

    async def new_window(self, url: str, window_name: str = '',
                         window_features: dict | None = None) -> str:
        return await self.client.new_window(url, window_name, window_features)

    async def close_browser_window(self, focus_to_tab_id: str | None = None) -> list[str]:
        return await self.tabs.close_tab(focus_to_tab_id)

    async def close_current_tab(self) -> None:
        if not await self.tabs.close_current_tab():
            await self.end()

    async def close_all_other_tabs(self) -> None:
        await self.tabs.close_all_other_tabs()

    async def close_first_sibling_tab(self) -> bool:
        return await self.tabs.close_first_sibling_tab()

    async def switch_to_first_sibling_tab(self) -> bool:
        return await self.tabs.switch_to_first_sibling()

    async def switch_to_main_sibling_tab(self) -> bool:
        return await self.tabs.switch_to_main_sibling()

    async def maximize_window(self) -> bool:
        try:
            await self.client.window_handle_maximize()
        except WebAppError as exc:
            self.logger.warning('failed to maximize window, %s', exc)
            return False
        return True

    async def switch_to_frame(self, name: int | str | None) -> None:
        await self.client.frame(name)

    async def switch_to_parent_frame(self) -> None:
        await self.client.frame_parent()

    # ------------------------------------------------------------------
    # Cookies and scripts
    # ------------------------------------------------------------------

    async def set_cookie(self, cookie: dict) -> None:
        await self.client.set_cookie(cookie)

    async def get_cookie(self, name: str | None = None) -> Any:
        return await self.client.get_cookie(name)

    async def delete_cookie(self, name: str | None = None) -> None:
        await self.client.delete_cookie(name)

    async def execute(self, script: str, *args: Any) -> Any:
        return await self.client.execute(script, *args)

    async def execute_async(self, script: str, *args: Any) -> Any:
        return await self.client.execute_async(script, *args)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def is_stopped(self) -> bool:
        return self._session_stopped

    async def end(self) -> None:
        self.tabs.reset()
        await self.client.end()
        self._session_stopped = True
        self.logger.debug('Session %s ended', self.test_uid)


def _anchor(value: Any, extent: float, named: dict[str, float]) -> float:
    if value == 'center':
        return math.ceil(extent / 2)
    if value in named:
        return named[value]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 1


def _url_path(value: str) -> str:
    parts = urlsplit(value)
    return parts.path + (f'?{parts.query}' if parts.query else '')
