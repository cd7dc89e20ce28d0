"""
Record schemas for the campaign store and the analytics queue.

Field aliases reproduce the JSON layout already stored in Redis and read by
the analytics consumer (``"ID"``, ``"CycleHitsDone"``, ``"CampaignPageID"``,
...). Python code uses the snake_case field names.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

EVENT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Page(BaseModel):
    """One destination variant of a campaign, with its per-cycle quota."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(alias="ID")
    name: str = Field(default="", alias="Name")
    url: str = Field(alias="URL")
    cycle_hits_done: int = Field(default=0, ge=0, alias="CycleHitsDone")
    cycle_hits_todo: int = Field(default=0, alias="CycleHitsTodo")


class Campaign(BaseModel):
    """
    A traffic-splitting unit stored under ``campaign:<key>``.

    Page order is significant: it decides which eligible page wins.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(default=0, alias="ID")
    name: str = Field(default="", alias="Name")
    key: str = Field(alias="Key")
    params: str = Field(default="", alias="Params")
    cycles_done: int = Field(default=0, ge=0, alias="CyclesDone")
    pages: tuple[Page, ...] = Field(default=(), alias="Pages")

    @field_validator("pages", mode="before")
    @classmethod
    def null_pages_as_empty(cls, value):
        # Records written with a null page list
        return () if value is None else value

    @field_validator("pages")
    @classmethod
    def unique_page_ids(cls, pages: tuple[Page, ...]) -> tuple[Page, ...]:
        seen = set()
        for page in pages:
            if page.id in seen:
                raise ValueError(f"duplicate page ID {page.id}")
            seen.add(page.id)
        return pages

    @property
    def total_cycle_hits(self) -> int:
        return sum(page.cycle_hits_done for page in self.pages)

    def to_record(self) -> str:
        """Serialize to the JSON record stored in Redis."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_record(cls, data: str | bytes) -> "Campaign":
        """Parse a JSON record read from Redis."""
        return cls.model_validate_json(data)


class EventType(str, Enum):
    """Types of analytics events."""
    HIT = "hit"
    VIEW = "view"


class AnalyticParam(BaseModel):
    """A name/value pair captured from the triggering request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(alias="Name")
    value: str = Field(alias="Value")


class AnalyticsEvent(BaseModel):
    """
    Immutable analytics fact pushed onto the ``tasks`` queue.

    ``Date`` is rendered as local wall-clock time (``YYYY-MM-DD HH:MM:SS``)
    in the configured timezone, which is what the consumer expects.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_id: int = Field(alias="CampaignPageID")
    timestamp: datetime = Field(alias="Date")
    type: EventType = Field(alias="Type")
    params: tuple[AnalyticParam, ...] = Field(default=(), alias="Params")

    @field_serializer("timestamp")
    def format_date(self, value: datetime) -> str:
        return value.strftime(EVENT_DATE_FORMAT)

    @classmethod
    def create(
        cls,
        page_id: int,
        event_type: EventType,
        params: Iterable[tuple[str, str]] = (),
        timezone: str = "Europe/Paris",
    ) -> "AnalyticsEvent":
        """Build an event stamped with the current time in ``timezone``."""
        return cls(
            page_id=page_id,
            timestamp=datetime.now(ZoneInfo(timezone)),
            type=event_type,
            params=tuple(AnalyticParam(name=name, value=value) for name, value in params),
        )

    def to_queue_data(self) -> str:
        """Serialize to the JSON payload pushed onto the queue."""
        return self.model_dump_json(by_alias=True)
