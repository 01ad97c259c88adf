import pytest

from campday.utils.clock import minutes_to_clock_label, parse_clock_string, range_label, round_half_up, round_to_grid


@pytest.mark.parametrize(
    "value,expected",
    [
        ("9:00am", 540),
        ("9:00 AM", 540),
        ("9:05Pm", 1265),
        ("12:00am", 0),
        ("12:30pm", 750),
        ("14:30", 870),
        ("0:05", 5),
        (" 10:15 ", 615),
        (600, 600),
    ],
)
def test_parse_clock_string_accepts(value, expected):
    assert parse_clock_string(value) == expected


@pytest.mark.parametrize("value", ["25:00", "13:00pm", "0:30am", "9:60", "9", "abc", "", None, True, 9.5])
def test_parse_clock_string_rejects_without_raising(value):
    assert parse_clock_string(value) is None


def test_minutes_to_clock_label_format():
    assert minutes_to_clock_label(540) == "9:00am"
    assert minutes_to_clock_label(725) == "12:05pm"
    assert minutes_to_clock_label(0) == "12:00am"
    assert minutes_to_clock_label(1439) == "11:59pm"
    assert range_label(540, 600) == "9:00am - 10:00am"


def test_labels_parse_back_for_whole_day():
    for minute in range(0, 24 * 60, 7):
        assert parse_clock_string(minutes_to_clock_label(minute)) == minute


def test_round_to_grid_ties_round_up():
    assert round_to_grid(602, 5) == 600
    assert round_to_grid(603, 5) == 605
    assert round_to_grid(605, 5) == 605
    assert round_to_grid(2, 4) == 4
    assert round_to_grid(6, 4) == 8
    assert round_to_grid(17, 0) == 17


def test_round_half_up_is_not_bankers_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(22.5) == 23
    assert round_half_up(33.75) == 34
    assert round_half_up(56.25) == 56
