"""
Layout Engine - Wrap template text and compute the pixel position of every line
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple
from loguru import logger

from config import settings
from modules.fonts import FontHandle, FontMetrics
from modules.template import Template, TextElement
from utils.exceptions import FontLoadError


def round_px(value: float) -> int:
    """Round half-up to a whole pixel"""
    return int(math.floor(value + 0.5))


@dataclass
class LinePlacement:
    """One wrapped line, ready to draw"""
    element: str
    text: str
    x: int
    y: int  # top of the line
    font: FontHandle
    font_size: float
    color: str
    line: int = 0


@dataclass
class Diagnostic:
    """Non-fatal problem found while rendering"""
    element: str
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        where = self.element if self.line is None else f"{self.element}[{self.line}]"
        return f"{where}: {self.message}"


class LayoutEngine:
    """
    Turns template text elements into line placements

    Layout never touches a canvas: it only wraps text against real font
    metrics and stacks the resulting lines.
    """

    SPEAKER_SLOTS = (1, 2)
    SINGLE_ELEMENTS = ("sponsor", "date", "title")

    def __init__(self, fonts: FontMetrics = None, line_spacing: float = None):
        """
        Initialize Layout Engine

        Args:
            fonts: Font metrics provider (a new one is created otherwise)
            line_spacing: Line height as a multiple of font size (default: settings.LINE_SPACING)
        """
        self.fonts = fonts or FontMetrics()
        self.line_spacing = settings.LINE_SPACING if line_spacing is None else line_spacing
        self.name_gap_ratio = settings.NAME_GAP_RATIO

    def wrap_text(self, text: str, max_width: float, font: FontHandle, font_size: float) -> List[str]:
        """
        Greedy word wrap against a pixel width budget

        A word wider than the budget is never split; it gets a line of its own.

        Args:
            text: Input text
            max_width: Width budget in pixels
            font: Font used for measuring
            font_size: Font size in points

        Returns:
            List of text lines (empty for empty input)
        """
        lines = []
        current = ""

        for word in text.split():
            if not current:
                current = word
                continue

            candidate = f"{current} {word}"
            if self.fonts.measure_width(candidate, font, font_size) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word

        if current:
            lines.append(current)

        return lines

    def origin(self, element: TextElement, image_width: int, image_height: int) -> Tuple[int, int]:
        """Absolute pixel origin of an element"""
        return round_px(element.position.x * image_width), round_px(element.position.y * image_height)

    def layout_element(
        self,
        name: str,
        element: TextElement,
        image_width: int,
        image_height: int,
        line_spacing: float = None,
        origin: Tuple[int, int] = None
    ) -> List[LinePlacement]:
        """
        Lay out a single text element

        Line i is placed at y0 + round(i * font_size * line_spacing).

        Args:
            name: Element name (for diagnostics)
            element: Text element
            image_width: Final image width in pixels
            image_height: Final image height in pixels
            line_spacing: Override for the engine's line spacing
            origin: Override for the element's own (x, y) origin

        Returns:
            Line placements, top to bottom
        """
        if not element.text.strip():
            return []

        spacing = self.line_spacing if line_spacing is None else line_spacing
        font = self.fonts.load_font(element.font)

        x0, y0 = origin or self.origin(element, image_width, image_height)
        budget = round_px(element.box_width * image_width)

        lines = self.wrap_text(element.text, budget, font, element.font_size)

        return [
            LinePlacement(
                element=name,
                text=line,
                x=x0,
                y=y0 + round_px(i * element.font_size * spacing),
                font=font,
                font_size=element.font_size,
                color=element.color,
                line=i,
            )
            for i, line in enumerate(lines)
        ]

    def layout_speaker_pair(
        self,
        prefix: str,
        title: TextElement,
        name: TextElement,
        image_width: int,
        image_height: int,
        line_spacing: float = None,
        diagnostics: List[Diagnostic] = None
    ) -> List[LinePlacement]:
        """
        Lay out a speaker's talk title with the speaker name below it

        The name block starts half a name line below the last title line and
        is left-aligned with the title: it takes the title's x origin, not
        its own. It still wraps against its own box width.

        Args:
            prefix: Slot prefix such as "speaker1"
            title: Talk title element
            name: Speaker name element
            image_width: Final image width in pixels
            image_height: Final image height in pixels
            line_spacing: Override for the engine's line spacing
            diagnostics: When given, font failures are recorded here instead of raised

        Returns:
            Title placements followed by name placements
        """
        spacing = self.line_spacing if line_spacing is None else line_spacing
        x0, y0 = self.origin(title, image_width, image_height)

        try:
            title_lines = self.layout_element(f"{prefix}title", title, image_width, image_height, spacing)
        except FontLoadError as e:
            if diagnostics is None:
                raise
            diagnostics.append(Diagnostic(f"{prefix}title", e.message))
            title_lines = []

        title_height = round_px(len(title_lines) * title.font_size * spacing)
        name_y = y0 + title_height + round_px(name.font_size * self.name_gap_ratio)

        try:
            name_lines = self.layout_element(
                f"{prefix}name", name, image_width, image_height, spacing, origin=(x0, name_y)
            )
        except FontLoadError as e:
            if diagnostics is None:
                raise
            diagnostics.append(Diagnostic(f"{prefix}name", e.message))
            name_lines = []

        return title_lines + name_lines

    def create_layout(
        self,
        template: Template,
        image_width: int,
        image_height: int
    ) -> Tuple[List[LinePlacement], List[Diagnostic]]:
        """
        Lay out every text element of a template

        Args:
            template: Template with event data already merged in
            image_width: Final image width in pixels
            image_height: Final image height in pixels

        Returns:
            (placements, diagnostics)
        """
        placements: List[LinePlacement] = []
        diagnostics: List[Diagnostic] = []

        for slot in self.SPEAKER_SLOTS:
            prefix = f"speaker{slot}"
            placements.extend(self.layout_speaker_pair(
                prefix,
                getattr(template, f"{prefix}title"),
                getattr(template, f"{prefix}name"),
                image_width,
                image_height,
                diagnostics=diagnostics,
            ))

        for name in self.SINGLE_ELEMENTS:
            element = getattr(template, name)
            if element is None:
                continue
            try:
                placements.extend(self.layout_element(name, element, image_width, image_height))
            except FontLoadError as e:
                diagnostics.append(Diagnostic(name, e.message))

        logger.debug(f"Layout: {len(placements)} lines, {len(diagnostics)} diagnostics")

        return placements, diagnostics
