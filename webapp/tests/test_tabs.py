"""Tests for main-tab tracking."""

from __future__ import annotations

import pytest

from webapp.tabs import TabTracker


@pytest.fixture
def make_tracker(make_driver):
    def factory(*tabs: str):
        driver = make_driver(*tabs)
        return TabTracker(driver), driver
    return factory


class TestMainTab:
    @pytest.mark.asyncio
    async def test_lazy_init_queries_driver_once(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2')
        assert tracker.main_tab_id is None
        assert driver.current_tab_queries == 0

        assert await tracker.get_main_tab_id() == 'tab-1'
        driver.current = 'tab-2'
        assert await tracker.get_main_tab_id() == 'tab-1'
        assert driver.current_tab_queries == 1

    @pytest.mark.asyncio
    async def test_reset_requeries(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2')
        await tracker.get_main_tab_id()
        tracker.reset()
        driver.current = 'tab-2'
        assert await tracker.get_main_tab_id() == 'tab-2'
        assert driver.current_tab_queries == 2

    @pytest.mark.asyncio
    async def test_switch_tab_pins_main_first(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2')
        await tracker.switch_tab('tab-2')
        assert tracker.main_tab_id == 'tab-1'
        assert driver.current == 'tab-2'


class TestCloseCurrentTab:
    @pytest.mark.asyncio
    async def test_last_main_tab_signals_session_end(self, make_tracker):
        tracker, driver = make_tracker('tab-1')
        await tracker.get_main_tab_id()

        assert await tracker.close_current_tab() is False
        assert tracker.main_tab_id is None

        # A fresh window appears; the closed id must never come back.
        driver.tabs = ['tab-2']
        driver.current = 'tab-2'
        assert await tracker.get_main_tab_id() == 'tab-2'

    @pytest.mark.asyncio
    async def test_main_tab_with_siblings_promotes_first(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2', 'tab-3')
        await tracker.get_main_tab_id()

        assert await tracker.close_current_tab() is True
        assert tracker.main_tab_id == 'tab-2'
        assert driver.current == 'tab-2'
        assert driver.tabs == ['tab-2', 'tab-3']

    @pytest.mark.asyncio
    async def test_sibling_returns_to_main(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2')
        await tracker.get_main_tab_id()
        await tracker.switch_tab('tab-2')

        assert await tracker.close_current_tab() is True
        assert tracker.main_tab_id == 'tab-1'
        assert driver.current == 'tab-1'
        assert driver.tabs == ['tab-1']


class TestCloseTab:
    @pytest.mark.asyncio
    async def test_defaults_to_main(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2')
        remaining = await tracker.close_tab()
        assert remaining == ['tab-2']
        assert tracker.main_tab_id == 'tab-2'

    @pytest.mark.asyncio
    async def test_only_tab_resets(self, make_tracker):
        tracker, driver = make_tracker('tab-1')
        assert await tracker.close_tab('tab-1') == []
        assert tracker.main_tab_id is None

    @pytest.mark.asyncio
    async def test_closing_sibling_keeps_main(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2')
        await tracker.close_tab('tab-2')
        assert tracker.main_tab_id == 'tab-1'

    @pytest.mark.asyncio
    async def test_main_is_always_open_after_close(self, make_tracker):
        tracker, driver = make_tracker('a', 'b', 'c')
        for target in ('a', 'c', 'b'):
            await tracker.close_tab(target)
            main = tracker.main_tab_id
            assert main is None or main in driver.tabs


class TestSwitching:
    @pytest.mark.asyncio
    async def test_switch_to_main_sibling(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2')
        await tracker.get_main_tab_id()
        driver.current = 'tab-2'

        assert await tracker.switch_to_main_sibling() is True
        assert driver.current == 'tab-1'

    @pytest.mark.asyncio
    async def test_switch_to_main_sibling_when_main_gone(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2', 'tab-3')
        await tracker.get_main_tab_id()
        driver.tabs.remove('tab-1')

        assert await tracker.switch_to_main_sibling() is False
        assert driver.current == 'tab-2'
        assert tracker.main_tab_id == 'tab-2'

    @pytest.mark.asyncio
    async def test_switch_to_main_sibling_without_tabs(self, make_tracker):
        tracker, driver = make_tracker('tab-1')
        await tracker.get_main_tab_id()
        driver.tabs = []
        assert await tracker.switch_to_main_sibling() is False

    @pytest.mark.asyncio
    async def test_switch_to_first_sibling(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2', 'tab-3')
        assert await tracker.switch_to_first_sibling() is True
        assert driver.current == 'tab-2'

    @pytest.mark.asyncio
    async def test_switch_to_first_sibling_alone(self, make_tracker):
        tracker, driver = make_tracker('tab-1')
        assert await tracker.switch_to_first_sibling() is False
        assert driver.called('switch_tab') == []

    @pytest.mark.asyncio
    async def test_close_first_sibling_tab(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2', 'tab-3')
        assert await tracker.close_first_sibling_tab() is True
        assert driver.tabs == ['tab-1', 'tab-3']
        assert driver.current == 'tab-1'

    @pytest.mark.asyncio
    async def test_close_first_sibling_tab_alone(self, make_tracker):
        tracker, driver = make_tracker('tab-1')
        assert await tracker.close_first_sibling_tab() is False
        assert driver.tabs == ['tab-1']

    @pytest.mark.asyncio
    async def test_close_all_other_tabs(self, make_tracker):
        tracker, driver = make_tracker('tab-1', 'tab-2', 'tab-3')
        await tracker.close_all_other_tabs()
        assert driver.tabs == ['tab-1']
        assert driver.current == 'tab-1'
        assert tracker.main_tab_id == 'tab-1'
