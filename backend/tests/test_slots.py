"""Tests for bookable slot generation."""

from datetime import timedelta, timezone
from zoneinfo import ZoneInfo

from conftest import FRIDAY_LATE, NOW, at
from portal.integrations.google_calendar.models import BusyInterval
from portal.services.scheduling.slots import SLOT_DURATION, generate_slots


class TestMondayMorning:
    """Monday 08:00 UTC with one busy half hour at 10:00."""

    busy = [BusyInterval(start=at(19, 10), end=at(19, 10, 30))]

    def test_busy_slot_is_removed_and_neighbours_kept(self):
        slots = generate_slots(self.busy, NOW)
        starts = [s.start for s in slots]

        assert starts[0] == at(19, 9)
        assert at(19, 9, 30) in starts
        assert at(19, 10) not in starts
        assert at(19, 10, 30) in starts

    def test_five_weekdays_of_eighteen_slots_minus_one(self):
        slots = generate_slots(self.busy, NOW)
        assert len(slots) == 5 * 18 - 1

    def test_last_slot_of_the_day_starts_at_half_past_five(self):
        starts = [s.start for s in generate_slots([], NOW)]
        assert at(19, 17, 30) in starts
        assert at(19, 18) not in starts

    def test_display_strings(self):
        first = generate_slots([], NOW)[0]
        assert first.date == "Mon Oct 19 2026"
        assert first.display_time == "9:00 AM"

        afternoon = [s for s in generate_slots([], NOW) if s.start == at(19, 13, 30)][0]
        assert afternoon.display_time == "1:30 PM"

    def test_to_dict(self):
        first = generate_slots([], NOW)[0].to_dict()
        assert set(first) == {"start", "end", "date", "display_time"}
        assert first["start"] == "2026-10-19T09:00:00+00:00"
        assert first["end"] == "2026-10-19T09:30:00+00:00"


class TestWindowEdges:
    def test_friday_evening_rolls_to_monday(self):
        """Nothing bookable is left on Friday and the weekend is skipped."""
        slots = generate_slots([], FRIDAY_LATE)

        assert slots[0].start == at(26, 9)
        assert slots[0].date == "Mon Oct 26 2026"
        # Mon 26 through Thu 29
        assert len(slots) == 4 * 18

    def test_slot_starting_exactly_now_is_excluded(self):
        slots = generate_slots([], at(19, 9))
        assert slots[0].start == at(19, 9, 30)

    def test_mid_slot_now_skips_current_slot(self):
        slots = generate_slots([], at(19, 9, 10))
        assert slots[0].start == at(19, 9, 30)

    def test_window_ends_before_the_same_weekday_next_week(self):
        slots = generate_slots([], NOW)
        assert max(s.start for s in slots) == at(23, 17, 30)


class TestBusyOverlap:
    def test_busy_interval_straddling_two_slots_removes_both(self):
        busy = [BusyInterval(start=at(20, 9, 15), end=at(20, 9, 45))]
        starts = {s.start for s in generate_slots(busy, NOW)}

        assert at(20, 9) not in starts
        assert at(20, 9, 30) not in starts
        assert at(20, 10) in starts

    def test_touching_intervals_do_not_overlap(self):
        """Busy [08:30, 09:00) and [09:30, 10:00) leave 09:00 free."""
        busy = [
            BusyInterval(start=at(20, 8, 30), end=at(20, 9)),
            BusyInterval(start=at(20, 9, 30), end=at(20, 10)),
        ]
        starts = {s.start for s in generate_slots(busy, NOW)}

        assert at(20, 9) in starts
        assert at(20, 9, 30) not in starts

    def test_all_day_busy_clears_the_day(self):
        busy = [BusyInterval(start=at(21, 0), end=at(22, 0))]
        slots = generate_slots(busy, NOW)

        assert not [s for s in slots if s.start.day == 21]
        assert len(slots) == 4 * 18


class TestProperties:
    busy = [
        BusyInterval(start=at(19, 11), end=at(19, 12, 15)),
        BusyInterval(start=at(22, 16, 45), end=at(23, 9, 30)),
    ]

    def test_every_slot_satisfies_the_window_rules(self):
        for slot in generate_slots(self.busy, NOW):
            assert slot.start > NOW
            assert slot.end - slot.start == SLOT_DURATION
            assert slot.start.minute in (0, 30)
            assert 9 <= slot.start.hour < 18
            assert slot.start.weekday() < 5
            assert slot.start < NOW + timedelta(days=7)
            assert slot.start.tzinfo == timezone.utc
            assert not any(b.overlaps(slot.start, slot.end) for b in self.busy)

    def test_sorted_and_unique(self):
        starts = [s.start for s in generate_slots(self.busy, NOW)]
        assert starts == sorted(starts)
        assert len(starts) == len(set(starts))

    def test_deterministic(self):
        assert generate_slots(self.busy, NOW) == generate_slots(list(self.busy), NOW)


class TestSchedulingTimezone:
    def test_working_hours_follow_the_configured_zone(self):
        new_york = ZoneInfo("America/New_York")
        slots = generate_slots([], NOW, tz=new_york)

        # 09:00 EDT is 13:00 UTC
        assert slots[0].start == at(19, 13)
        assert slots[0].display_time == "9:00 AM"
        assert slots[-1].start == at(23, 21, 30)
        assert all(s.start.tzinfo == timezone.utc for s in slots)
