"""
Shared fixtures: a real TrueType font, synthetic images, templates and an event feed
"""

import json
from pathlib import Path

import numpy as np
import pytest
from PIL import ImageFont

from modules.feed import EventFeed
from modules.fonts import FontMetrics
from modules.layout import LayoutEngine
from utils.image_utils import save_image

BACKGROUND_COLOR = (20, 40, 60, 255)

EVENTS_YAML = """
- id: 41
  date: 2024-05-23
  title: Spring Meetup
  host: Example Corp
  talks:
    - title: Scaling Kubernetes Operators
      speaker: Jane Doe
      image: ""
    - title: Observability on a Budget
      speaker: John Roe
- id: 42
  date: "2024-12-03"
  title: Winter Meetup
  host: ~
  talks:
    - title: Service Mesh Basics
      speaker: Ada Lovelace
- id: 43
  date: not-a-date
  title: Summer Meetup
  host: Another Corp
  talks: ~
"""


@pytest.fixture(scope="session")
def font_path(tmp_path_factory) -> Path:
    """Pillow's bundled TrueType face written to a real .ttf file"""
    default = ImageFont.load_default(size=10)
    font_bytes = getattr(default, "font_bytes", None)
    if not font_bytes:
        pytest.skip("Pillow was built without FreeType support")

    path = tmp_path_factory.mktemp("fonts") / "default.ttf"
    path.write_bytes(font_bytes)
    return path


@pytest.fixture
def fonts(tmp_path) -> FontMetrics:
    return FontMetrics(fonts_dir=tmp_path)


@pytest.fixture
def font(fonts, font_path):
    return fonts.load_font(font_path)


@pytest.fixture
def layout_engine(fonts) -> LayoutEngine:
    return LayoutEngine(fonts)


def solid(width: int, height: int, color) -> np.ndarray:
    """Solid RGBA canvas"""
    canvas = np.zeros((height, width, 4), dtype=np.uint8)
    canvas[:, :] = color
    return canvas


@pytest.fixture
def background_png(tmp_path) -> Path:
    path = tmp_path / "background.png"
    save_image(solid(1600, 900, BACKGROUND_COLOR), path)
    return path


@pytest.fixture
def portrait_png(tmp_path) -> Path:
    path = tmp_path / "portrait.png"
    save_image(solid(120, 160, (0, 200, 0, 255)), path)
    return path


@pytest.fixture
def events_file(tmp_path) -> Path:
    path = tmp_path / "events.yml"
    path.write_text(EVENTS_YAML, encoding="utf-8")
    return path


@pytest.fixture
def events():
    return EventFeed().parse(EVENTS_YAML)


@pytest.fixture
def template_dict(font_path, portrait_png):
    """Canonical template: text elements, speaker image slots, no background"""

    def element(text, x, y, size=40, box=0.3, color="#FFFFFF"):
        return {
            "text": text,
            "font": str(font_path),
            "fontSize": size,
            "color": color,
            "position": {"x": x, "y": y},
            "boxWidth": box,
        }

    return {
        "background": {"image": ""},
        "speaker1title": element("Talk One", 0.5, 0.1, size=30),
        "speaker1name": element("Speaker One", 0.5, 0.3, size=24),
        "speaker2title": element("Talk Two", 0.5, 0.45, size=30),
        "speaker2name": element("Speaker Two", 0.9, 0.9, size=24),
        "sponsor": element("Jane Doe", 0.1, 0.8, size=40),
        "date": element("Some day", 0.7, 0.8, size=30),
        "speaker1image": {"position": {"x": 0.25, "y": 0.5}, "size": 300},
    }


@pytest.fixture
def template_file(tmp_path, template_dict) -> Path:
    path = tmp_path / "template.json"
    path.write_text(json.dumps(template_dict), encoding="utf-8")
    return path
