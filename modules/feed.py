"""
Event Feed Module - Load the community event list and project events onto template slots
"""

import datetime as dt
from pathlib import Path
from typing import List, Optional, Union
import httpx
import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from config import settings
from utils.exceptions import EventNotFoundError, FeedFetchError, FeedParseError


def _blank_if_none(value):
    return "" if value is None else value


class Talk(BaseModel):
    """A talk with title, speaker and optional portrait reference"""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    title: str = ""
    speaker: str = ""
    image: str = ""

    @field_validator("title", "speaker", "image", mode="before")
    @classmethod
    def blank_strings(cls, value):
        return _blank_if_none(value)


class Event(BaseModel):
    """A community event"""
    # Unquoted YAML scalars such as `title: 1984` arrive as numbers
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: int
    date: str = ""
    title: str = ""
    host: str = ""
    talks: List[Talk] = Field(default_factory=list)

    @field_validator("title", "host", mode="before")
    @classmethod
    def blank_strings(cls, value):
        return _blank_if_none(value)

    @field_validator("date", mode="before")
    @classmethod
    def _date_to_iso(cls, value):
        # YAML turns unquoted 2024-05-23 into a date object
        if isinstance(value, (dt.date, dt.datetime)):
            return value.strftime("%Y-%m-%d")
        return _blank_if_none(value)

    @field_validator("talks", mode="before")
    @classmethod
    def _talks_default(cls, value):
        return [] if value is None else value


class EventData(BaseModel):
    """Event flattened onto the template's named slots"""
    event_id: str = ""
    speaker1_title: str = ""
    speaker1_name: str = ""
    speaker1_image: str = ""
    speaker2_title: str = ""
    speaker2_name: str = ""
    speaker2_image: str = ""
    sponsor: str = ""
    date: str = ""
    event_title: str = ""


def resolve_event_data(event: Event) -> EventData:
    """
    Project an event onto the template slots

    Only the first two talks map to speaker slots 1 and 2.

    Args:
        event: Parsed event

    Returns:
        Fresh EventData for this event
    """
    data = EventData(
        event_id=str(event.id),
        sponsor=event.host,
        date=event.date,
        event_title=event.title,
    )

    for slot, talk in enumerate(event.talks[:2], start=1):
        setattr(data, f"speaker{slot}_title", talk.title)
        setattr(data, f"speaker{slot}_name", talk.speaker)
        setattr(data, f"speaker{slot}_image", talk.image)

    if len(event.talks) > 2:
        logger.debug(f"Event {event.id} has {len(event.talks)} talks, only the first two are used")

    return data


def find_event(events: List[Event], event_id: Union[int, str]) -> Event:
    """
    Find an event by id

    Raises:
        EventNotFoundError: If no event has this id
    """
    for event in events:
        if str(event.id) == str(event_id).strip():
            return event

    raise EventNotFoundError(event_id)


class EventFeed:
    """
    Fetches the event list from the remote feed or a local file
    """

    def __init__(self, url: str = None, timeout: float = None, transport: httpx.BaseTransport = None):
        """
        Initialize EventFeed

        Args:
            url: Remote feed URL (default: settings.EVENTS_URL)
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url or settings.EVENTS_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.transport = transport

    def fetch(self) -> str:
        """
        Fetch raw feed text from the remote URL
        """
        logger.info(f"Fetching events from {self.url}")

        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=True, transport=self.transport) as client:
                response = client.get(self.url)
        except httpx.HTTPError as e:
            raise FeedFetchError(self.url, f"HTTP error: {e}") from e

        if response.status_code != 200:
            raise FeedFetchError(self.url, f"HTTP {response.status_code}")

        return response.text

    def read(self, events_file: Union[str, Path]) -> str:
        """
        Read raw feed text from a local file
        """
        events_file = Path(events_file)
        logger.info(f"Reading events from {events_file}")

        try:
            return events_file.read_text(encoding="utf-8")
        except OSError as e:
            raise FeedFetchError(events_file, f"cannot read file ({e})") from e

    def parse(self, text: str, source: str = "events.yml") -> List[Event]:
        """
        Parse feed YAML into events

        Args:
            text: YAML document holding a list of events
            source: Where the text came from (for error messages)

        Returns:
            Events in feed order
        """
        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise FeedParseError(source, f"invalid YAML ({e})") from e

        if payload is None:
            return []

        if not isinstance(payload, list):
            raise FeedParseError(source, f"expected a list of events, got {type(payload).__name__}")

        try:
            events = [Event.model_validate(item) for item in payload]
        except ValidationError as e:
            raise FeedParseError(source, f"invalid event record: {e}") from e

        logger.info(f"Parsed {len(events)} events from {source}")

        return events

    def load(self, events_file: Optional[Union[str, Path]] = None) -> List[Event]:
        """
        Load events from a local file if given, otherwise from the remote feed

        Args:
            events_file: Optional local YAML file overriding the remote fetch

        Returns:
            Events in feed order
        """
        if events_file:
            return self.parse(self.read(events_file), source=str(events_file))

        return self.parse(self.fetch(), source=self.url)
