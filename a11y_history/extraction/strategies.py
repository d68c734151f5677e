"""Extraction strategies for pulling values out of report text.

Each strategy returns a matched value or ``None`` for no match. Strategies
are combined with ``first_match`` (ordered, first hit wins) or
``max_merge`` (every hit considered, largest wins).
"""

import re
from collections.abc import Callable, Iterable, Iterator
from typing import Generic, Protocol, TypeVar

from a11y_history.extraction.patterns import SECTION_END, SECTION_ENTRY

V = TypeVar("V")
V_co = TypeVar("V_co", covariant=True)


class ExtractionStrategy(Protocol[V_co]):
    """Contract for a single way of reading a value from text."""

    def extract(self, text: str) -> V_co | None:
        """Return the first value found, or None."""
        ...

    def extract_all(self, text: str) -> list[V_co]:
        """Return every value found, in text order."""
        ...


class PatternStrategy(Generic[V]):
    """Regex with a single capture group converted to a value.

    Captures that fail conversion (ValueError) or are rejected by
    ``accept`` count as no match rather than as zero.
    """

    def __init__(
        self,
        pattern: re.Pattern[str],
        convert: Callable[[str], V] = int,  # type: ignore[assignment]
        accept: Callable[[V], bool] | None = None,
    ):
        self.pattern = pattern
        self.convert = convert
        self.accept = accept

    def _values(self, text: str) -> Iterator[V]:
        for match in self.pattern.finditer(text):
            try:
                value = self.convert(match.group(1))
            except (TypeError, ValueError):
                continue
            if self.accept is not None and not self.accept(value):
                continue
            yield value

    def extract(self, text: str) -> V | None:
        return next(self._values(text), None)

    def extract_all(self, text: str) -> list[V]:
        return list(self._values(text))

    def __repr__(self) -> str:
        return f"PatternStrategy({self.pattern.pattern!r})"


class SectionCountStrategy:
    """Count numbered "### N." entries under a section heading.

    The section runs from the heading to the next level-1 or level-2
    heading, or the end of the text.
    """

    def __init__(
        self,
        heading: re.Pattern[str],
        section_end: re.Pattern[str] = SECTION_END,
        entry: re.Pattern[str] = SECTION_ENTRY,
    ):
        self.heading = heading
        self.section_end = section_end
        self.entry = entry

    def _section(self, text: str) -> str | None:
        match = self.heading.search(text)
        if match is None:
            return None
        end = self.section_end.search(text, match.end())
        return text[match.end() : end.start() if end else len(text)]

    def extract(self, text: str) -> int | None:
        section = self._section(text)
        if section is None:
            return None
        count = len(self.entry.findall(section))
        return count if count > 0 else None

    def extract_all(self, text: str) -> list[int]:
        value = self.extract(text)
        return [] if value is None else [value]

    def __repr__(self) -> str:
        return f"SectionCountStrategy({self.heading.pattern!r})"


def first_match(strategies: Iterable[ExtractionStrategy[V]], text: str) -> V | None:
    """Try strategies in order and return the first value found."""
    for strategy in strategies:
        value = strategy.extract(text)
        if value is not None:
            return value
    return None


def max_merge(strategies: Iterable[ExtractionStrategy[int]], text: str, start: int = 0) -> int:
    """Merge every match of every strategy by maximum.

    Guards against reports that mention the same category several times
    with conflicting numbers.
    """
    result = start
    for strategy in strategies:
        for value in strategy.extract_all(text):
            result = max(result, value)
    return result
