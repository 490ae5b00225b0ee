"""Element locators and their canonical XPath form.

An ElementPath is built by attribute access and indexing on ROOT:

    ROOT.login_form.submit          exact data-test-automation-id match
    ROOT['row*']                    prefix match
    ROOT['*row']                    suffix match
    ROOT['*row*']                   substring match
    ROOT['*']                       any marked element
    ROOT['{Sign in}']               any marked element containing the text
    ROOT.rows['*'][2]               third match of the preceding query

Ids that collide with ElementPath members (child, describe, is_root,
to_xpath) or start with an underscore are only reachable by indexing:

    ROOT['child']                   exact match on the id "child"

Paths are immutable; every access returns a new path.
"""

from __future__ import annotations

import re

AUTOMATION_ATTRIBUTE = 'data-test-automation-id'
ROOT_XPATH = '/*'

_QUERY = 'query'
_INDEX = 'index'
_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    chunks = value.split("'")
    return 'concat(' + ", \"'\", ".join(f"'{chunk}'" for chunk in chunks) + ')'


def _is_attribute_name(name: str) -> bool:
    return bool(_IDENTIFIER.match(name)) and not name.startswith('_') and not hasattr(ElementPath, name)


class ElementPath:
    """Structured, root-relative element locator."""

    # __getitem__ accepts ints; without this iter() would never stop.
    __iter__ = None

    def __init__(
        self,
        parts: tuple[tuple[str, str | int], ...] = (),
        attribute: str = AUTOMATION_ATTRIBUTE,
    ) -> None:
        self._parts = tuple(parts)
        self._attribute = attribute

    def __getattr__(self, name: str) -> ElementPath:
        if name.startswith('_'):
            raise AttributeError(name)
        return self.child(name)

    def __getitem__(self, key: str | int) -> ElementPath:
        if isinstance(key, bool):
            raise TypeError('ElementPath index must be int or str')
        if isinstance(key, int):
            if key < 0:
                raise ValueError(f'Negative index is not supported: {key}')
            if not self._parts:
                raise ValueError('Root element can not be indexed')
            return ElementPath(self._parts + ((_INDEX, key),), self._attribute)
        if isinstance(key, str):
            return self.child(key)
        raise TypeError('ElementPath index must be int or str')

    def child(self, query: str) -> ElementPath:
        if not query:
            raise ValueError('Empty element query')
        return ElementPath(self._parts + ((_QUERY, query),), self._attribute)

    @property
    def is_root(self) -> bool:
        return not self._parts

    def _predicate(self, query: str) -> str:
        attr = f'@{self._attribute}'
        if query == '*':
            return f'[{attr}]'
        if query.startswith('{') and query.endswith('}') and len(query) > 2:
            return f'[{attr} and contains(., {xpath_literal(query[1:-1])})]'
        if len(query) > 2 and query.startswith('*') and query.endswith('*'):
            return f'[contains({attr}, {xpath_literal(query[1:-1])})]'
        if query.endswith('*'):
            return f'[starts-with({attr}, {xpath_literal(query[:-1])})]'
        if query.startswith('*'):
            needle = xpath_literal(query[1:])
            return (
                f'[substring({attr}, string-length({attr}) - string-length({needle}) + 1)'
                f' = {needle}]'
            )
        return f'[{attr}={xpath_literal(query)}]'

    def to_xpath(self, allow_multiple: bool = False) -> str:
        """Compile to XPath.

        Unless allow_multiple is set, a final query without an explicit
        index is narrowed to its first match so the result addresses a
        single node.
        """
        if not self._parts:
            return ROOT_XPATH

        xpath = ''
        for kind, value in self._parts:
            if kind == _INDEX:
                xpath = f'({xpath})[{value + 1}]'
            else:
                xpath += '//*' + self._predicate(value)

        if not allow_multiple and self._parts[-1][0] == _QUERY:
            xpath = f'({xpath})[1]'
        return xpath

    def describe(self) -> str:
        """Dotted form for log messages: root.login_form.rows[2]"""
        out = 'root'
        for kind, value in self._parts:
            if kind == _INDEX:
                out += f'[{value}]'
            elif _is_attribute_name(str(value)):
                out += f'.{value}'
            else:
                out += f'[{value!r}]'
        return out

    def __str__(self) -> str:
        return self.to_xpath()

    def __repr__(self) -> str:
        return f'ElementPath({self.describe()})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ElementPath):
            return NotImplemented
        return self._parts == other._parts and self._attribute == other._attribute

    def __hash__(self) -> int:
        return hash((self._parts, self._attribute))


ROOT = ElementPath()


def normalize_selector(selector: ElementPath | str | None, allow_multiple: bool = False) -> str:
    """Canonical string form of a locator as sent to the driver.

    Falsy selectors resolve to the root scope. Plain strings are taken to
    be driver-ready already and pass through untouched.
    """
    if not selector:
        return ROOT.to_xpath()
    if isinstance(selector, ElementPath):
        return selector.to_xpath(allow_multiple)
    return str(selector)


def format_selector(selector: ElementPath | str | None) -> str:
    if not selector:
        return '(root)'
    if isinstance(selector, ElementPath):
        return f'({selector.describe()})'
    return f'({selector})'
