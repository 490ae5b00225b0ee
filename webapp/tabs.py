"""Main-tab bookkeeping for one browser session.

The main tab is the tab that was active when its identity was first
needed. It is looked up lazily, once, and stays fixed until reset() or
until the tab is closed, in which case the first remaining tab takes its
place. After any close the main tab is either None or still open.
"""

from __future__ import annotations

import logging
from typing import Protocol

log = logging.getLogger(__name__)


class TabDriver(Protocol):
    async def get_current_tab_id(self) -> str: ...
    async def get_tab_ids(self) -> list[str]: ...
    async def switch_tab(self, tab_id: str) -> None: ...
    async def close(self, tab_id: str | None = None) -> list[str]: ...


class TabTracker:
    """Tracks the main tab and moves focus between tabs."""

    def __init__(self, client: TabDriver) -> None:
        self._client = client
        self._main_tab_id: str | None = None

    @property
    def main_tab_id(self) -> str | None:
        """Current main tab without querying the driver (None until known)."""
        return self._main_tab_id

    def reset(self) -> None:
        self._main_tab_id = None

    async def _init_main_tab_id(self) -> None:
        if self._main_tab_id is None:
            self._main_tab_id = await self._client.get_current_tab_id()
            log.debug('Main tab is %s', self._main_tab_id)

    async def get_main_tab_id(self) -> str:
        await self._init_main_tab_id()
        return self._main_tab_id  # type: ignore[return-value]

    async def get_tab_ids(self) -> list[str]:
        return await self._client.get_tab_ids()

    async def get_current_tab_id(self) -> str:
        return await self._client.get_current_tab_id()

    async def switch_tab(self, tab_id: str) -> None:
        await self._init_main_tab_id()
        await self._client.switch_tab(tab_id)

    async def set_active_tab(self, tab_id: str) -> None:
        await self.switch_tab(tab_id)

    async def close_tab(self, target_id: str | None = None) -> list[str]:
        """Close target_id (default: the main tab). Returns the remaining tab ids."""
        main_id = await self.get_main_tab_id()
        tab_ids = await self.get_tab_ids()
        target = target_id or main_id

        if tab_ids == [target]:
            self.reset()

        remaining = await self._client.close(target)

        if self._main_tab_id is not None and self._main_tab_id not in remaining:
            self._main_tab_id = remaining[0] if remaining else None
            log.debug('Main tab closed, promoted %s', self._main_tab_id)
        return remaining

    async def close_current_tab(self) -> bool:
        """Close the active tab and move focus.

        Returns False when the last tab was closed and the session should end.
        """
        current_id = await self.get_current_tab_id()
        main_id = await self.get_main_tab_id()

        remaining = await self.close_tab(current_id)

        if current_id == main_id:
            if not remaining:
                self.reset()
                return False
            await self.set_active_tab(remaining[0])
            self._main_tab_id = remaining[0]
            return True

        await self.switch_to_main_sibling()
        return True

    async def switch_to_main_sibling(self) -> bool:
        """Focus the main tab. If it is gone, focus the first open tab and return False."""
        main_id = await self.get_main_tab_id()
        tab_ids = await self.get_tab_ids()

        if main_id in tab_ids:
            await self.set_active_tab(main_id)
            return True
        if tab_ids:
            self._main_tab_id = tab_ids[0]
            await self.set_active_tab(tab_ids[0])
        return False

    async def switch_to_first_sibling(self) -> bool:
        """Focus the first tab that is not the main tab. False when there is none."""
        main_id = await self.get_main_tab_id()
        siblings = [tab_id for tab_id in await self.get_tab_ids() if tab_id != main_id]
        if not siblings:
            return False
        await self.set_active_tab(siblings[0])
        return True

    async def close_first_sibling_tab(self) -> bool:
        if not await self.switch_to_first_sibling():
            return False
        await self.close_current_tab()
        await self.switch_to_main_sibling()
        return True

    async def close_all_other_tabs(self) -> None:
        main_id = await self.get_main_tab_id()
        for tab_id in await self.get_tab_ids():
            if tab_id != main_id:
                await self.close_tab(tab_id)
        await self.switch_to_main_sibling()
