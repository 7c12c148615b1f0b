"""Notion-backed calendar store.

Committed blocks are pages in a Notion database with a ``Name`` title and
a ``When`` date range. Accepted suggestions are written back as new pages.
"""

from __future__ import annotations

import asyncio
import os
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Sequence

from notion_client import Client

from ..config import PlannerConfig
from ..errors import DependencyError, ValidationError
from ..gaps import day_bounds, resolve_quiet_windows
from ..models import PlacedSuggestion, QuietWindow, TimeInterval
from ..ports import CalendarStore

DATE_PROPERTY = "When"


class NotionCalendarStore(CalendarStore):
    """Calendar store backed by a Notion database."""

    def __init__(
        self,
        client: Client,
        database_id: str,
        *,
        quiet_hours: Sequence[QuietWindow] = (),
        tz: Optional[tzinfo] = None,
    ) -> None:
        self._client = client
        self._database_id = database_id
        self._quiet_hours = tuple(quiet_hours)
        self._tz = tz

    @classmethod
    def from_config(cls, config: PlannerConfig) -> "NotionCalendarStore":
        config.validate_notion()
        return cls(
            Client(auth=config.notion_token),
            config.calendar_database_id,
            quiet_hours=config.quiet_hours,
            tz=config.tzinfo,
        )

    @classmethod
    def from_env(cls) -> "NotionCalendarStore":
        token = _get_env("NOTION_TOKEN") or _get_env("NOTION_API_KEY")
        if not token:
            raise DependencyError("NOTION_TOKEN or NOTION_API_KEY must be set")
        return cls.from_config(PlannerConfig.from_env())

    async def current_day_blocks(self, day: date) -> Sequence[TimeInterval]:
        bounds = day_bounds(day, self._tz)
        filter_obj = {
            "and": [
                {"property": DATE_PROPERTY, "date": {"before": bounds.end.isoformat()}},
                {
                    "property": DATE_PROPERTY,
                    "date": {"on_or_after": (bounds.start - timedelta(days=1)).isoformat()},
                },
            ]
        }

        def _run_query() -> dict:
            return self._client.databases.query(
                database_id=self._database_id,
                filter=filter_obj,
            )

        response = await asyncio.to_thread(_run_query)
        blocks = []
        for page in response.get("results", []):
            interval = _interval_from_page(page, self._tz)
            if interval is not None and interval.overlaps(bounds):
                blocks.append(interval)
        return sorted(blocks, key=lambda b: b.start)

    async def quiet_hour_windows(self, day: date) -> Sequence[TimeInterval]:
        return resolve_quiet_windows(self._quiet_hours, day, self._tz)

    async def commit(self, suggestion: PlacedSuggestion) -> None:
        properties = _properties_from_suggestion(suggestion)

        def _run_create() -> dict:
            return self._client.pages.create(
                parent={"database_id": self._database_id},
                properties=properties,
            )

        await asyncio.to_thread(_run_create)


def _get_env(key: str) -> Optional[str]:
    value = os.environ.get(key)
    return value if value and value.strip() else None


def _interval_from_page(page: dict, tz: Optional[tzinfo]) -> Optional[TimeInterval]:
    props = page.get("properties", {})
    when = props.get(DATE_PROPERTY, {}).get("date") or {}
    start = _parse_time(when.get("start"), tz)
    end = _parse_time(when.get("end"), tz)
    if start is None or end is None:
        # All-day or open-ended entries do not block time
        return None
    try:
        return TimeInterval(start=start, end=end)
    except ValidationError:
        return None


def _properties_from_suggestion(suggestion: PlacedSuggestion) -> dict:
    candidate = suggestion.candidate
    properties = {
        "Name": {"title": [{"text": {"content": candidate.title}}]},
        DATE_PROPERTY: {
            "date": {
                "start": suggestion.start.isoformat(),
                "end": suggestion.end.isoformat(),
            }
        },
        "Energy": {"select": {"name": candidate.energy.value}},
        "Suggestion ID": {"rich_text": [{"text": {"content": suggestion.id}}]},
    }

    if candidate.emoji:
        properties["Emoji"] = {"rich_text": [{"text": {"content": candidate.emoji}}]}

    explanation = candidate.reason or candidate.explanation
    if explanation:
        properties["Explanation"] = {
            "rich_text": [{"text": {"content": _truncate_text(explanation, 2000)}}]
        }

    return properties


def _parse_time(value: Optional[str], tz: Optional[tzinfo]) -> Optional[datetime]:
    if not value or "T" not in value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if tz is None:
        return parsed
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def _truncate_text(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    return value[:max_len]
