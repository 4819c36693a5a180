"""Bookable slot generation.

Pure function of (busy intervals, now): no I/O, same input gives the same
output. Working hours are 09:00-18:00 in 30-minute slots, Monday to
Friday, over the seven calendar days starting at ``now``'s date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Iterable

from portal.integrations.google_calendar.models import BusyInterval

SLOT_DURATION = timedelta(minutes=30)
WORKING_HOURS = (9, 18)
WINDOW_DAYS = 7
WEEKEND = (5, 6)  # Saturday, Sunday


@dataclass(frozen=True)
class AvailableSlot:
    start: datetime         # UTC
    end: datetime           # UTC
    date: str               # "Mon Oct 20 2026"
    display_time: str       # "9:30 AM"

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "date": self.date,
            "display_time": self.display_time,
        }


def _format_time(value: datetime) -> str:
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {'AM' if value.hour < 12 else 'PM'}"


def _format_date(value: datetime) -> str:
    return value.strftime("%a %b %d %Y")


def generate_slots(
    busy_intervals: Iterable[BusyInterval],
    now: datetime,
    *,
    tz: tzinfo = timezone.utc,
) -> list[AvailableSlot]:
    """Return every free working-hours slot in the next seven days.

    ``now`` must be timezone-aware. ``tz`` places the working-hours window
    (and the display strings); slot timestamps are always UTC.
    """
    busy = list(busy_intervals)
    local_today = now.astimezone(tz).date()
    start_hour, end_hour = WORKING_HOURS

    slots: list[AvailableSlot] = []
    for day in range(WINDOW_DAYS):
        current = local_today + timedelta(days=day)
        if current.weekday() in WEEKEND:
            continue

        for hour in range(start_hour, end_hour):
            for minute in (0, 30):
                local_start = datetime.combine(current, time(hour, minute), tzinfo=tz)
                slot_start = local_start.astimezone(timezone.utc)
                slot_end = slot_start + SLOT_DURATION

                if slot_start <= now:
                    continue
                if any(b.overlaps(slot_start, slot_end) for b in busy):
                    continue

                slots.append(
                    AvailableSlot(
                        start=slot_start,
                        end=slot_end,
                        date=_format_date(local_start),
                        display_time=_format_time(local_start),
                    )
                )

    return slots
