"""
Page model for generated reports.

A report is laid out first as plain draw primitives on a fixed 595x842 canvas
(origin bottom-left, like PDF), then rendered. Keeping the layout separate
from the renderer makes pagination deterministic and inspectable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

PAGE_WIDTH = 595
PAGE_HEIGHT = 842

MARGIN_X = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN_X
CONTENT_TOP = PAGE_HEIGHT - 100
CONTENT_BOTTOM = 70

# wrapping uses an average glyph width, not font metrics
CHAR_WIDTH_FACTOR = 0.6

BRAND = "SiteScan"
FOOTER_CAPTION = "SiteScan Web Scanner - Security & Performance Analysis"

NAVY = (0.05, 0.15, 0.35)
WHITE = (1, 1, 1)
LIGHT_GREY = (0.8, 0.8, 0.8)
MID_GREY = (0.6, 0.6, 0.6)
DARK_GREY = (0.2, 0.2, 0.2)
TEXT_GREY = (0.3, 0.3, 0.3)
PANEL = (0.98, 0.98, 1)
PANEL_BORDER = (0.7, 0.7, 0.9)
GREEN = (0.1, 0.6, 0.2)
AMBER = (1, 0.7, 0)
RED = (0.8, 0.1, 0.1)


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float = 10
    color: tuple = DARK_GREY
    bold: bool = False


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[tuple] = None
    stroke: Optional[tuple] = None
    stroke_width: float = 0


DrawOp = Union[Text, Box]


@dataclass(frozen=True)
class Page:
    number: int
    title: str
    ops: tuple

    def texts(self) -> list[str]:
        return [op.text for op in self.ops if isinstance(op, Text)]


@dataclass(frozen=True)
class ReportDocument:
    pages: tuple

    @property
    def page_count(self) -> int:
        return len(self.pages)


def score_color(score: float) -> tuple:
    if score >= 80:
        return GREEN
    if score >= 60:
        return AMBER
    return RED


CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]+")


def printable(text) -> str:
    # the base-14 PDF fonts only cover Latin-1; drawString has no line breaks
    text = CONTROL_RE.sub(" ", str(text))
    return text.encode("latin-1", "replace").decode("latin-1")


def truncate(text: str, limit: int) -> str:
    text = str(text or "")
    return text if len(text) <= limit else text[: limit - 3] + "..."


def wrap_text(text: str, max_width: float = 450, font_size: float = 9) -> list[str]:
    if not text:
        return []
    max_chars = max(1, int(max_width // (font_size * CHAR_WIDTH_FACTOR)))
    lines: list[str] = []
    for paragraph in str(text).splitlines():
        line = ""
        for word in paragraph.split():
            # unbroken runs (urls, hashes) are cut at the line width
            while len(word) > max_chars:
                if line:
                    lines.append(line)
                    line = ""
                lines.append(word[:max_chars])
                word = word[max_chars:]
            candidate = f"{line} {word}" if line else word
            if len(candidate) > max_chars and line:
                lines.append(line)
                line = word
            else:
                line = candidate
        if line:
            lines.append(line)
    return lines


def header_ops(title: str, number: int) -> list:
    return [
        Box(0, PAGE_HEIGHT - 80, PAGE_WIDTH, 80, fill=NAVY),
        Text(MARGIN_X, PAGE_HEIGHT - 42, BRAND, 20, WHITE, bold=True),
        Text(260, PAGE_HEIGHT - 40, printable(title), 14, WHITE),
        Text(PAGE_WIDTH - 80, PAGE_HEIGHT - 40, f"Page {number}", 10, LIGHT_GREY),
    ]


def footer_ops() -> list:
    return [
        Box(0, 50, PAGE_WIDTH, 0.5, fill=LIGHT_GREY),
        Text(MARGIN_X, 30, BRAND, 11, NAVY, bold=True),
        Text(250, 30, FOOTER_CAPTION, 8, MID_GREY),
    ]


class PageWriter:
    """
    Running vertical cursor over the content area of the current page.

    Callers reserve space with ensure(height) before drawing a block; if the
    block does not fit, a new page with the same title is started first.
    """

    def __init__(self):
        self._pages: list[tuple[str, list]] = []
        self._title = ""
        self.y = CONTENT_TOP

    def start_page(self, title: str):
        self._title = title
        self._pages.append((title, []))
        self.y = CONTENT_TOP

    @property
    def remaining(self) -> float:
        return self.y - CONTENT_BOTTOM

    def ensure(self, height: float):
        if not self._pages or height > self.remaining:
            self.start_page(self._title)

    def advance(self, dy: float):
        self.y -= dy

    def text(self, x: float, y: float, text, size: float = 10, color=DARK_GREY, bold: bool = False):
        self._pages[-1][1].append(Text(x, y, printable(text), size, color, bold))

    def box(self, x: float, y: float, width: float, height: float, fill=None, stroke=None, stroke_width: float = 0):
        self._pages[-1][1].append(Box(x, y, width, height, fill, stroke, stroke_width))

    def heading(self, text: str, size: float = 12, color=NAVY, gap: float = 20):
        self.ensure(gap + 12)
        self.text(MARGIN_X, self.y, text, size, color, bold=True)
        self.advance(gap)

    def paragraph(self, text: str, *, x: float = MARGIN_X, size: float = 9, color=DARK_GREY, leading: float = 12,
                  max_width: float = CONTENT_WIDTH - 20):
        for line in wrap_text(text, max_width, size):
            self.ensure(leading)
            self.text(x, self.y, line, size, color)
            self.advance(leading)

    def finish(self) -> ReportDocument:
        pages = []
        for index, (title, ops) in enumerate(self._pages, start=1):
            pages.append(Page(number=index, title=title, ops=tuple(header_ops(title, index) + ops + footer_ops())))
        return ReportDocument(pages=tuple(pages))
