"""Locator strategies understood by the harness."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

STRATEGIES = ("css", "xpath", "text")


@dataclass(frozen=True)
class Locator:
    """How to find an element: a strategy plus its expression.

    Rendered to a Playwright selector via :attr:`selector`. ``parent``
    scopes the search under another locator and ``index`` picks the n-th
    match (zero-based), both using Playwright's ``>>`` chaining.
    """

    strategy: str
    value: str
    index: Optional[int] = None
    parent: Optional["Locator"] = None

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(f"Unknown locator strategy {self.strategy!r}; expected one of {STRATEGIES}")
        if not self.value:
            raise ValueError("Locator value must not be empty")
        if self.index is not None and self.index < 0:
            raise ValueError("Locator index must be >= 0")

    @classmethod
    def css(cls, value: str) -> "Locator":
        return cls("css", value)

    @classmethod
    def xpath(cls, value: str) -> "Locator":
        return cls("xpath", value)

    @classmethod
    def text(cls, value: str) -> "Locator":
        return cls("text", value)

    def nth(self, index: int) -> "Locator":
        return replace(self, index=index)

    def within(self, parent: "Locator") -> "Locator":
        """Scope this locator under ``parent`` (outermost parent last applied)."""
        if self.parent is None:
            return replace(self, parent=parent)
        return replace(self, parent=self.parent.within(parent))

    @property
    def selector(self) -> str:
        own = f"{self.strategy}={self.value}"
        if self.index is not None:
            own += f" >> nth={self.index}"
        if self.parent is not None:
            return f"{self.parent.selector} >> {own}"
        return own

    def __str__(self) -> str:
        return self.selector
