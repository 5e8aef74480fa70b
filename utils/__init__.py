"""
Utility Functions
"""

from .image_utils import (
    load_image,
    save_image,
    resize_to_width,
    get_image_dimensions,
)

__all__ = [
    "load_image",
    "save_image",
    "resize_to_width",
    "get_image_dimensions",
]
