import pytest
from pydantic import ValidationError

from telecare.models.slot import Period, TimeSlot
from telecare.services.slot_service import (
    derive_end_time,
    format_time_12h,
    generate_time_slots,
    group_slots_by_period,
    normalize_slots,
    period_for_start,
    slot_period,
)


@pytest.mark.parametrize(
    "start,expected",
    [
        ("04:59", None),
        ("05:00", Period.MORNING),
        ("09:30", Period.MORNING),
        ("11:59", Period.MORNING),
        ("12:00", Period.AFTERNOON),
        ("16:59", Period.AFTERNOON),
        ("17:00", Period.EVENING),
        ("21:59", Period.EVENING),
        ("22:00", None),
        ("00:30", None),
    ],
)
def test_period_boundaries(start, expected):
    assert period_for_start(start) is expected


def test_explicit_and_derived_period_agree():
    explicit = TimeSlot(start="09:30", end="10:00", period="morning")
    derived = TimeSlot(start="09:30", end="10:00")
    assert slot_period(explicit) is Period.MORNING
    assert slot_period(derived) is Period.MORNING


def test_explicit_period_is_authoritative():
    slot = TimeSlot(start="09:30", end="10:00", period="evening")
    assert slot_period(slot) is Period.EVENING


def test_group_slots_by_period():
    slots = [
        TimeSlot(start="17:00", end="17:30"),
        TimeSlot(start="11:59", end="12:29"),
        TimeSlot(start="12:00", end="12:30"),
        TimeSlot(start="08:00", end="08:30", period="morning"),
        TimeSlot(start="22:30", end="23:00"),
    ]
    groups = group_slots_by_period(slots)
    assert list(groups) == [Period.MORNING, Period.AFTERNOON, Period.EVENING]
    assert [s.start for s in groups[Period.MORNING]] == ["08:00", "11:59"]
    assert [s.start for s in groups[Period.AFTERNOON]] == ["12:00"]
    assert [s.start for s in groups[Period.EVENING]] == ["17:00"]


def test_group_empty():
    assert group_slots_by_period([]) == {p: [] for p in Period}


@pytest.mark.parametrize(
    "start,expected",
    [
        ("08:45", "09:15"),
        ("09:00", "09:30"),
        ("10:30", "11:00"),
        ("23:50", "00:20"),
        ("23:30", "00:00"),
    ],
)
def test_derive_end_time(start, expected):
    assert derive_end_time(start) == expected


def test_derive_end_time_custom_length():
    assert derive_end_time("09:40", minutes=45) == "10:25"


def test_generate_time_slots_fits_window():
    slots = generate_time_slots("09:00", "10:45")
    assert [(s.start, s.end) for s in slots] == [
        ("09:00", "09:30"),
        ("09:30", "10:00"),
        ("10:00", "10:30"),
    ]


def test_generate_time_slots_empty_window():
    assert generate_time_slots("17:00", "17:00") == []
    assert generate_time_slots("17:00", "09:00") == []


def test_generate_time_slots_stops_before_midnight():
    slots = generate_time_slots("23:00", "23:59")
    assert [(s.start, s.end) for s in slots] == [("23:00", "23:30")]


def test_normalize_slots():
    slots = [
        TimeSlot(start="10:00", end="10:30"),
        TimeSlot(start="09:00", end="09:30"),
        TimeSlot(start="10:00", end="10:30"),
        TimeSlot(start="11:00", end="11:30", booked=True),
    ]
    out = normalize_slots(slots)
    assert [(s.start, s.end) for s in out] == [("09:00", "09:30"), ("10:00", "10:30")]
    assert out[1] is slots[0]


def test_format_time_12h():
    assert format_time_12h("00:05") == "12:05 AM"
    assert format_time_12h("09:30") == "9:30 AM"
    assert format_time_12h("12:00") == "12:00 PM"
    assert format_time_12h("13:05") == "1:05 PM"


class TestTimeSlotModel:
    def test_accepts_original_field_names(self):
        slot = TimeSlot.model_validate({"startTime": "9:00", "endTime": "09:30:00", "isBooked": True})
        assert (slot.start, slot.end, slot.booked) == ("09:00", "09:30", True)

    def test_blank_period_is_absent(self):
        assert TimeSlot(start="09:00", end="09:30", period="").period is None

    def test_unknown_period_falls_back_to_start_time(self):
        slot = TimeSlot.model_validate({"start": "18:00", "end": "18:30", "period": "night"})
        assert slot.period is None
        assert slot_period(slot) is Period.EVENING
        assert TimeSlot(start="09:00", end="09:30", period=" Morning ").period is Period.MORNING

    @pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("10:00", "09:30"), ("25:00", "25:30")])
    def test_rejects_bad_interval(self, start, end):
        with pytest.raises(ValidationError):
            TimeSlot(start=start, end=end)

    def test_frozen(self):
        slot = TimeSlot(start="09:00", end="09:30")
        with pytest.raises(ValidationError):
            slot.start = "10:00"
