"""Indented text rendering of settings for human inspection."""
import os
import re
from collections.abc import Iterator, Mapping
from typing import Any, Optional


def default_utf8() -> bool:
    """True if the locale in ``LANG`` is UTF-8."""
    return bool(re.search(r'utf-?8\Z', os.environ.get('LANG', ''), re.I))


class Tree:
    """A named node of a text tree with connector glyphs between children.

    Box-drawing glyphs are used on UTF-8 locales, ASCII ones otherwise.
    """

    def __init__(self, name: str, utf8: Optional[bool] = None):
        self.name = name
        self.utf8 = default_utf8() if utf8 is None else utf8
        self.children: list["Tree"] = []

    @classmethod
    def convert(cls, name: Any, value: Any, utf8: Optional[bool] = None) -> "Tree":
        """Build a tree from nested settings, mappings and sequences."""
        if hasattr(value, 'to_dict'):
            value = value.to_dict()
        if isinstance(value, Mapping):
            node = cls(str(name), utf8=utf8)
            for key, item in value.items():
                node.append(cls.convert(key, item, utf8=utf8))
            return node
        if isinstance(value, (list, tuple)):
            node = cls(str(name), utf8=utf8)
            for index, item in enumerate(value):
                node.append(cls.convert(index, item, utf8=utf8))
            return node
        if isinstance(name, int):
            return cls(repr(value), utf8=utf8)
        return cls(f"{name} = {value!r}", utf8=utf8)

    def append(self, child: "Tree") -> "Tree":
        self.children.append(child)
        return self

    def _inner_child_prefix(self, i: int) -> str:
        if self.utf8:
            return "├─ " if i == 0 else "│  "
        return "+- " if i == 0 else "|  "

    def _last_child_prefix(self, i: int) -> str:
        if self.utf8:
            return "└─ " if i == 0 else "   "
        return "`- " if i == 0 else "   "

    def lines(self) -> Iterator[str]:
        yield self.name
        last = len(self.children) - 1
        for child_index, child in enumerate(self.children):
            prefix = (
                self._inner_child_prefix if child_index < last
                else self._last_child_prefix
            )
            for i, line in enumerate(child.lines()):
                yield f"{prefix(i)}{line}"

    def __iter__(self) -> Iterator[str]:
        return self.lines()

    def __str__(self) -> str:
        return "\n".join(self.lines())
