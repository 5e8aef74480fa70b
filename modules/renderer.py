"""
Renderer - Composite background, overlays, speaker portraits and text onto a canvas
"""

import numpy as np
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union
from PIL import Image, ImageColor, ImageDraw
from loguru import logger

from config import settings
from modules.feed import EventData
from modules.layout import Diagnostic, LinePlacement, round_px
from modules.template import Template
from utils.exceptions import DecodeError, FetchError, FontLoadError
from utils.image_utils import Canvas, load_image, save_image

ImageSource = Union[Canvas, str, Path]


def _as_rgba(image: np.ndarray) -> Canvas:
    """Copy any 8-bit image array into a fresh RGBA canvas"""
    if image.ndim == 3 and image.shape[2] == 4:
        return np.ascontiguousarray(image, dtype=np.uint8).copy()
    return np.array(Image.fromarray(image).convert("RGBA"))


class Renderer:
    """
    Draws every layer of a poster

    All methods take and return RGBA canvases; the canvas under
    construction is owned by a single render.
    """

    WHITE = (255, 255, 255)

    def __init__(self, text_anchor: str = None):
        """
        Initialize Renderer

        Args:
            text_anchor: Pillow text anchor (default: settings.TEXT_ANCHOR)
        """
        self.text_anchor = text_anchor or settings.TEXT_ANCHOR

    def _load(self, source: ImageSource) -> Canvas:
        if isinstance(source, np.ndarray):
            return _as_rgba(source)
        return load_image(source)

    def composite(self, background: ImageSource, overlays: Sequence[ImageSource] = ()) -> Canvas:
        """
        Stack full-frame overlays on a background

        The background is copied into a fresh canvas of its own size. Each
        overlay is then blended source-over in list order, anchored at the
        top-left corner and cropped to the canvas.

        Args:
            background: Background canvas, path or URL
            overlays: Overlay canvases, paths or URLs (bottom to top)

        Returns:
            New RGBA canvas

        Raises:
            DecodeError, FetchError: If any layer cannot be loaded
        """
        canvas_pil = Image.fromarray(self._load(background))
        width, height = canvas_pil.size

        for overlay in overlays:
            layer = Image.fromarray(self._load(overlay))
            if layer.size != (width, height):
                # Pixels outside a smaller overlay come back fully transparent
                layer = layer.crop((0, 0, width, height))
            canvas_pil.alpha_composite(layer)

        logger.debug(f"Composited background {width}x{height} with {len(overlays)} overlays")

        return np.array(canvas_pil)

    def place_circular(
        self,
        canvas: Canvas,
        source: Canvas,
        center_x: int,
        center_y: int,
        diameter: int
    ) -> Canvas:
        """
        Paste a circular crop of an image, scaled to fill the circle

        The source is scaled by max(d / w, d / h) so it covers the whole
        d x d square, center-cropped, then written into the canvas only
        inside the circle and only where the source is not fully
        transparent. Written pixels replace the destination.

        Args:
            canvas: Destination canvas (modified in place)
            source: Source image
            center_x: Circle center x in canvas pixels
            center_y: Circle center y in canvas pixels
            diameter: Circle diameter in pixels

        Returns:
            The destination canvas
        """
        if diameter <= 0:
            return canvas

        source = _as_rgba(source)
        src_h, src_w = source.shape[:2]

        scale = max(diameter / src_w, diameter / src_h)
        scaled_w = max(diameter, round_px(src_w * scale))
        scaled_h = max(diameter, round_px(src_h * scale))

        scaled = np.array(Image.fromarray(source).resize((scaled_w, scaled_h), Image.BILINEAR))

        off_x = (scaled_w - diameter) // 2
        off_y = (scaled_h - diameter) // 2
        buffer = scaled[off_y:off_y + diameter, off_x:off_x + diameter]

        # Circle mask in buffer coordinates
        half = diameter // 2
        Y, X = np.ogrid[:diameter, :diameter]
        inside = (X - half) ** 2 + (Y - half) ** 2 <= (diameter / 2) ** 2
        mask = inside & (buffer[:, :, 3] > 0)

        left, top = center_x - half, center_y - half
        canvas_h, canvas_w = canvas.shape[:2]

        x1, y1 = max(0, left), max(0, top)
        x2, y2 = min(canvas_w, left + diameter), min(canvas_h, top + diameter)
        if x1 >= x2 or y1 >= y2:
            return canvas

        window = (slice(y1 - top, y2 - top), slice(x1 - left, x2 - left))
        region = canvas[y1:y2, x1:x2]
        visible = mask[window]
        region[visible] = buffer[window][visible]

        return canvas

    def place_speakers(
        self,
        canvas: Canvas,
        template: Template,
        event_data: EventData,
        resolve: Optional[Callable[[str, str, int], str]] = None
    ) -> List[Diagnostic]:
        """
        Place the speaker portraits of slots 1 and 2

        A slot is skipped when the template has no image spec for it or the
        event has no image. A portrait that fails to load is reported and
        skipped; the poster is still produced.

        Args:
            canvas: Destination canvas (modified in place)
            template: Template holding the speaker image specs
            event_data: Resolved event data
            resolve: Maps (image reference, event id, slot) to a loadable path or URL

        Returns:
            Diagnostics for portraits that could not be placed
        """
        diagnostics = []
        canvas_h, canvas_w = canvas.shape[:2]

        for slot in (1, 2):
            spec = getattr(template, f"speaker{slot}image")
            reference = getattr(event_data, f"speaker{slot}_image")
            if spec is None or not reference:
                continue

            try:
                location = resolve(reference, event_data.event_id, slot) if resolve else reference
                portrait = load_image(location)
            except (DecodeError, FetchError) as e:
                diagnostics.append(Diagnostic(f"speaker{slot}image", e.message))
                continue

            center_x = round_px(spec.position.x * canvas_w)
            center_y = round_px(spec.position.y * canvas_h)
            self.place_circular(canvas, portrait, center_x, center_y, spec.size)
            logger.debug(f"Placed speaker {slot} portrait at ({center_x}, {center_y}), d={spec.size}")

        return diagnostics

    def draw_text(self, canvas: Canvas, placements: List[LinePlacement]) -> Tuple[Canvas, List[Diagnostic]]:
        """
        Draw laid-out text lines

        Each line is drawn on its own; a failing line is reported and the
        remaining lines are still drawn. An unparsable color falls back to
        white.

        Args:
            canvas: Canvas array
            placements: Line placements from the layout engine

        Returns:
            (canvas with text, diagnostics)
        """
        diagnostics = []

        canvas_pil = Image.fromarray(canvas)
        text_layer = Image.new("RGBA", canvas_pil.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(text_layer)

        for placement in placements:
            try:
                fill = ImageColor.getrgb(placement.color)
            except ValueError:
                diagnostics.append(Diagnostic(
                    placement.element, f"invalid color '{placement.color}', using white", placement.line
                ))
                fill = self.WHITE

            try:
                face = placement.font.face(placement.font_size)
            except FontLoadError as e:
                diagnostics.append(Diagnostic(placement.element, e.message, placement.line))
                continue

            draw.text(
                (placement.x, placement.y),
                placement.text,
                font=face,
                fill=fill,
                anchor=self.text_anchor
            )

        canvas_pil.alpha_composite(text_layer)

        return np.array(canvas_pil), diagnostics

    def save_poster(self, poster: Canvas, output_path: Path) -> None:
        """
        Save poster to file

        Args:
            poster: Poster canvas
            output_path: Output file path
        """
        save_image(poster, output_path, quality=settings.OUTPUT_QUALITY)
        logger.info(f"Saved poster to {output_path}")
