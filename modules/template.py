"""
Template Module - Parse poster templates and merge event data into them
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config import settings
from modules.feed import EventData
from utils.exceptions import TemplateParseError


class Position(BaseModel):
    """Position as fractions of the image width / height"""
    x: float = Field(0.0, ge=0.0, le=1.0)
    y: float = Field(0.0, ge=0.0, le=1.0)


class TextElement(BaseModel):
    """Text element: copy, font, size, color, position and wrap box width"""
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    font: str = ""
    font_size: float = Field(0.0, alias="fontSize", ge=0.0)
    color: str = settings.DEFAULT_TEXT_COLOR
    position: Position = Field(default_factory=Position)  # y is the top of the first line
    box_width: float = Field(0.0, alias="boxWidth", ge=0.0, le=1.0)


class SpeakerImageSpec(BaseModel):
    """Circular speaker portrait: fractional center and diameter in pixels"""
    position: Position = Field(default_factory=Position)
    size: int = 0


class BackgroundSpec(BaseModel):
    """Background image and optional full-frame overlays"""
    image: str = ""
    overlays: List[str] = Field(default_factory=list)


class Template(BaseModel):
    """Poster template"""
    background: BackgroundSpec = Field(default_factory=BackgroundSpec)
    speaker1title: TextElement = Field(default_factory=TextElement)
    speaker1name: TextElement = Field(default_factory=TextElement)
    speaker2title: TextElement = Field(default_factory=TextElement)
    speaker2name: TextElement = Field(default_factory=TextElement)
    sponsor: TextElement = Field(default_factory=TextElement)
    date: TextElement = Field(default_factory=TextElement)
    title: Optional[TextElement] = None
    speaker1image: Optional[SpeakerImageSpec] = None
    speaker2image: Optional[SpeakerImageSpec] = None


ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# English month names, independent of the process locale
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def load_template(template_path: Union[str, Path]) -> Template:
    """
    Load and validate a template file

    Args:
        template_path: Path to template JSON

    Returns:
        Parsed template

    Raises:
        TemplateParseError: If the file is unreadable, not JSON or off-schema
    """
    template_path = Path(template_path)

    try:
        raw = template_path.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateParseError(template_path, f"cannot read file ({e})") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TemplateParseError(template_path, f"invalid JSON ({e})") from e

    try:
        template = Template.model_validate(data)
    except ValidationError as e:
        raise TemplateParseError(template_path, f"schema mismatch ({e.error_count()} errors): {e}") from e

    logger.debug(f"Loaded template: {template_path}")

    return template


def list_templates(templates_dir: Path = None) -> List[Path]:
    """
    List template files available in the templates directory

    Args:
        templates_dir: Directory to scan (default: assets/templates)

    Returns:
        Sorted list of template files
    """
    templates_dir = templates_dir or settings.TEMPLATES_DIR

    if not templates_dir.is_dir():
        logger.warning(f"Templates directory '{templates_dir}' does not exist. Continuing without templates.")
        return []

    return sorted(p for p in templates_dir.iterdir() if p.is_file())


def day_ordinal_suffix(day: int) -> str:
    """
    Ordinal suffix for a day of the month (1st, 2nd, 3rd, 4th, 11th...)
    """
    if 11 <= day <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_event_date(raw_date: str) -> Optional[str]:
    """
    Format an ISO calendar date as an ordinal long date

    Args:
        raw_date: Date as YYYY-MM-DD (e.g. "2024-05-23")

    Returns:
        Formatted date (e.g. "23rd May 2024"), or None if unparsable
    """
    raw_date = raw_date.strip()
    if not ISO_DATE_PATTERN.match(raw_date):
        return None

    try:
        parsed = datetime.strptime(raw_date, "%Y-%m-%d")
    except ValueError:
        return None

    return f"{parsed.day}{day_ordinal_suffix(parsed.day)} {MONTH_NAMES[parsed.month - 1]} {parsed.year}"


def apply_overrides(template: Template, event_data: EventData) -> Template:
    """
    Merge event data into template text, field by field

    A field is only overridden when the event supplies a non-empty value,
    so the template keeps its own placeholder copy otherwise.

    Args:
        template: Template to update in place
        event_data: Resolved event data

    Returns:
        The same template
    """
    overrides = {
        "speaker1title": event_data.speaker1_title,
        "speaker1name": event_data.speaker1_name,
        "speaker2title": event_data.speaker2_title,
        "speaker2name": event_data.speaker2_name,
        "sponsor": event_data.sponsor,
    }

    for field, value in overrides.items():
        if value:
            getattr(template, field).text = value

    if event_data.date:
        formatted = format_event_date(event_data.date)
        if formatted is None:
            logger.debug(f"Could not parse event date '{event_data.date}', using it verbatim")
        template.date.text = formatted or event_data.date

    if event_data.event_title and template.title is not None:
        template.title.text = event_data.event_title

    return template
