"""
Event Poster Generator Modules
"""

from .feed import EventFeed
from .fonts import FontMetrics
from .layout import LayoutEngine
from .renderer import Renderer
from .speaker_images import SpeakerImageCache
from .exporter import Exporter

__all__ = [
    "EventFeed",
    "FontMetrics",
    "LayoutEngine",
    "Renderer",
    "SpeakerImageCache",
    "Exporter",
]
