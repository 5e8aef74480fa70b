"""
Font Metrics - Load TrueType fonts and measure text with real glyph advances
"""

from pathlib import Path
from typing import Dict, Union
from loguru import logger
from PIL import ImageFont

from config import settings
from utils.exceptions import FontLoadError


class FontHandle:
    """
    A parsed font file that hands out faces at any size

    Pillow sizes are pixels, which equal points at a fixed 72 DPI.
    """

    def __init__(self, path: Path):
        self.path = path
        self._faces: Dict[float, ImageFont.FreeTypeFont] = {}

    def face(self, size: float) -> ImageFont.FreeTypeFont:
        """Get (cached) face at the given point size"""
        if size not in self._faces:
            try:
                self._faces[size] = ImageFont.truetype(str(self.path), size)
            except (OSError, ValueError) as e:
                raise FontLoadError(self.path, str(e)) from e
        return self._faces[size]

    def __repr__(self) -> str:
        return f"FontHandle({self.path})"


class FontMetrics:
    """
    Loads fonts and measures string widths in pixels
    """

    PROBE_SIZE = 12

    def __init__(self, fonts_dir: Path = None):
        """
        Initialize FontMetrics

        Args:
            fonts_dir: Fallback directory for relative font paths (default: assets/fonts)
        """
        self.fonts_dir = fonts_dir or settings.FONTS_DIR
        self._handles: Dict[Path, FontHandle] = {}
        self._fallback: ImageFont.ImageFont = None

    def resolve_path(self, font_path: Union[str, Path]) -> Path:
        """
        Resolve a template font reference to a file

        The path is used as given when it exists, otherwise it is looked
        up by name in the fonts directory.
        """
        path = Path(font_path)
        if path.is_file():
            return path

        candidate = self.fonts_dir / path.name
        if candidate.is_file():
            return candidate

        return path

    def load_font(self, font_path: Union[str, Path]) -> FontHandle:
        """
        Load and validate a font file

        Args:
            font_path: Path to a TrueType/OpenType font

        Returns:
            FontHandle (cached per resolved path)

        Raises:
            FontLoadError: If the file is missing, unreadable or not a font
        """
        if not str(font_path).strip():
            raise FontLoadError(font_path, "no font configured")

        path = self.resolve_path(font_path)
        if path in self._handles:
            return self._handles[path]

        if not path.is_file():
            raise FontLoadError(path, "file not found")

        handle = FontHandle(path)
        # Parse once up front so a corrupt font fails here, not mid-layout
        handle.face(self.PROBE_SIZE)

        self._handles[path] = handle
        logger.debug(f"Loaded font: {path}")

        return handle

    def fallback_face(self) -> ImageFont.ImageFont:
        """Get Pillow's built-in fixed-width bitmap face (one size only)"""
        if self._fallback is None:
            self._fallback = ImageFont.load_default_imagefont()
        return self._fallback

    def measure_width(self, text: str, font: FontHandle, size: float) -> float:
        """
        Measure rendered width of text

        A zero width for non-empty text means the font has no usable
        glyphs; the built-in fallback face is measured instead.

        Args:
            text: Text to measure
            font: Loaded font
            size: Font size in points

        Returns:
            Width in pixels
        """
        if not text:
            return 0.0

        width = font.face(size).getlength(text)
        if width == 0:
            logger.debug(f"Zero width for '{text}' with {font.path.name}, measuring with fallback face")
            width = self.fallback_face().getlength(text)

        return float(width)
