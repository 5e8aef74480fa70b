"""
Image utility functions for loading, saving and resizing canvases

A canvas is always a uint8 numpy array of shape (height, width, 4) in RGBA order.
"""

import io
import math
import cv2
import httpx
import numpy as np
from pathlib import Path
from typing import Optional, Union, Tuple
from PIL import Image, UnidentifiedImageError

from config import settings
from utils.exceptions import DecodeError, EncodeError, FetchError, WriteError

Canvas = np.ndarray


def is_url(reference: Union[str, Path]) -> bool:
    """Check whether an image reference points to a remote resource"""
    return str(reference).startswith(("http://", "https://"))


def to_rgba(image: np.ndarray) -> Canvas:
    """
    Normalise an OpenCV-decoded image to an 8-bit RGBA canvas

    Args:
        image: Grayscale, BGR or BGRA image (8 or 16 bit)

    Returns:
        RGBA canvas
    """
    if image.dtype == np.uint16:
        image = (image / 257).astype(np.uint8)
    elif image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)


def decode_image(data: bytes, source: Union[str, Path]) -> Canvas:
    """
    Decode encoded image bytes into an RGBA canvas

    OpenCV sniffs the content, so the file extension never matters.
    Formats OpenCV cannot read (GIF, some WebP builds) go through Pillow.

    Args:
        data: Encoded image bytes
        source: Path or URL the bytes came from (for error messages)

    Returns:
        RGBA canvas
    """
    buffer = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    if img is not None:
        return to_rgba(img)

    try:
        with Image.open(io.BytesIO(data)) as pil_img:
            return np.array(pil_img.convert("RGBA"))
    except (UnidentifiedImageError, OSError) as e:
        raise DecodeError(source, f"unsupported or corrupt image data ({e})") from e


def fetch_bytes(url: str, client: Optional[httpx.Client] = None) -> bytes:
    """
    Download a remote resource

    Args:
        url: http(s) URL
        client: Optional httpx client (a new one is created otherwise)

    Returns:
        Response body
    """
    try:
        if client is not None:
            response = client.get(url)
        else:
            with httpx.Client(timeout=settings.HTTP_TIMEOUT, follow_redirects=True) as http:
                response = http.get(url)
    except httpx.HTTPError as e:
        raise FetchError(url, f"HTTP error: {e}") from e

    if response.status_code != 200:
        raise FetchError(url, f"HTTP {response.status_code}")

    return response.content


def load_image(image_path: Union[str, Path], client: Optional[httpx.Client] = None) -> Canvas:
    """
    Load image from a file path or an http(s) URL

    Args:
        image_path: Path to image file or remote URL
        client: Optional httpx client used for remote images

    Returns:
        Image as RGBA canvas
    """
    if is_url(image_path):
        return decode_image(fetch_bytes(str(image_path), client), image_path)

    image_path = Path(image_path)
    if not image_path.is_file():
        raise DecodeError(image_path, "file not found")

    try:
        data = image_path.read_bytes()
    except OSError as e:
        raise DecodeError(image_path, f"cannot read file ({e})") from e

    return decode_image(data, image_path)


def save_image(image: Canvas, output_path: Union[str, Path], quality: int = 95) -> None:
    """
    Save image to file

    Args:
        image: RGBA canvas
        output_path: Output file path (format chosen by suffix)
        quality: JPEG quality (1-100)
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower() or ".jpg"

    try:
        if suffix == ".png":
            img_bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
            ok, encoded = cv2.imencode(suffix, img_bgr)
        elif suffix in [".jpg", ".jpeg"]:
            # JPEG has no alpha channel
            img_bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGR)
            ok, encoded = cv2.imencode(suffix, img_bgr, [cv2.IMWRITE_JPEG_QUALITY, quality])
        else:
            img_bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGR)
            ok, encoded = cv2.imencode(suffix, img_bgr)
    except cv2.error as e:
        raise EncodeError(output_path, str(e)) from e

    if not ok:
        raise EncodeError(output_path, f"encoder rejected format '{suffix}'")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(encoded.tobytes())
    except OSError as e:
        raise WriteError(output_path, str(e)) from e


def resize_to_width(image: Canvas, target_width: int) -> Canvas:
    """
    Resize canvas to a target width, keeping the aspect ratio

    Uses the same bilinear filter as circular placement and never
    touches the input canvas.

    Args:
        image: Input canvas
        target_width: Width of the returned canvas in pixels

    Returns:
        New resized canvas
    """
    if target_width <= 0:
        raise ValueError(f"target width must be positive, got {target_width}")

    h, w = image.shape[:2]
    target_height = max(1, int(math.floor(target_width * h / w + 0.5)))

    resized = Image.fromarray(image).resize((target_width, target_height), Image.BILINEAR)

    return np.array(resized)


def get_image_dimensions(image: Canvas) -> Tuple[int, int]:
    """
    Get canvas dimensions

    Returns:
        (width, height)
    """
    return image.shape[1], image.shape[0]
