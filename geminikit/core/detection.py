"""Prioritized UI detection strategies.

Gemini's markup is inconsistent across rollouts, so each logical element
(chat input, download control, ...) is described by an ordered list of
strategies. first_match() returns the first one that finds something.
"""

import re
from abc import ABC, abstractmethod


class LocatorStrategy(ABC):
    """One way of finding a logical UI element on a page."""

    name: str = "locator"

    @abstractmethod
    def build(self, page):
        """Return a Playwright locator for this strategy."""
        pass

    async def find(self, page, visible: bool = False, timeout: float | None = None):
        """Return the locator if the element is present, else None.

        visible=False only checks that the element is attached. visible=True
        checks visibility immediately (timeout None or 0), or waits up to `timeout`
        seconds for it. Playwright reads a 0 ms timeout as "wait forever".
        Errors while probing count as "absent".
        """
        try:
            locator = self.build(page)
            if not visible:
                found = await locator.count() > 0
            elif timeout is None or timeout <= 0:
                found = await locator.is_visible()
            else:
                await locator.wait_for(state="visible", timeout=timeout * 1000)
                found = True
        except Exception:
            return None
        return locator if found else None

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"


class CssStrategy(LocatorStrategy):
    """First element matching a CSS selector."""

    def __init__(self, selector: str):
        self.selector = selector
        self.name = selector

    def build(self, page):
        return page.locator(self.selector).first


class LastMatchStrategy(LocatorStrategy):
    """Last element matching a CSS selector (e.g. the close button of a dialog)."""

    def __init__(self, selector: str):
        self.selector = selector
        self.name = f"{selector} (last)"

    def build(self, page):
        return page.locator(self.selector).last


class RoleStrategy(LocatorStrategy):
    """First element with an ARIA role whose accessible name matches a pattern."""

    def __init__(self, role: str, name_pattern: str):
        self.role = role
        self.name_pattern = name_pattern
        self.name = f"role={role}[name~/{name_pattern}/i]"

    def build(self, page):
        return page.get_by_role(self.role, name=re.compile(self.name_pattern, re.IGNORECASE)).first


async def first_match(page, strategies: list[LocatorStrategy], visible: bool = False, timeout: float | None = None):
    """Evaluate strategies in order. Returns (strategy, locator) or None."""
    for strategy in strategies:
        locator = await strategy.find(page, visible=visible, timeout=timeout)
        if locator is not None:
            return strategy, locator
    return None
