from campday.services.template_parser import find_wall, parse_template_for_division
from campday.services.timeline import BlockRole, FlexWindow, TimeBlock
from tests.fakes import RAINY_JUNIORS, block


def test_rainy_template_classification():
    parsed = parse_template_for_division(RAINY_JUNIORS, "Juniors")

    assert [b.event_name for b in parsed.activity_queue] == [
        "Gym Games", "Movie", "Board Games", "Indoor Sports", "Arts",
    ]
    assert [b.event_name for b in parsed.fixed_blocks] == ["Lunch", "Dismissal"]
    assert parsed.wall_time == 870
    assert parsed.wall_block.role == BlockRole.wall
    assert parsed.activity_queue[1].flex == FlexWindow(min=34, max=56, ideal=45)
    assert all(b.flex is None for b in parsed.fixed_blocks)


def test_only_first_wall_counts():
    records = [
        block("Juniors", "9:00am", "10:00am", "Swim"),
        block("Juniors", "2:00pm", "2:30pm", "Early Dismissal", "pinned"),
        block("Juniors", "3:00pm", "3:30pm", "Dismissal", "pinned"),
    ]
    parsed = parse_template_for_division(records, "Juniors")
    assert parsed.wall_time == 840
    second = [b for b in parsed.fixed_blocks if b.event_name == "Dismissal"][0]
    assert second.role == BlockRole.fixed


def test_pinned_type_is_schedulable_unless_pinned_event():
    records = [
        block("Juniors", "9:00am", "9:30am", "Davening", "pinned"),
        block("Juniors", "9:30am", "10:30am", "Color War", "pinned"),
        block("Juniors", "10:30am", "11:00am", "Assembly", "custom"),
        block("Juniors", "11:00am", "11:15am", "Snacks", "slot"),
    ]
    parsed = parse_template_for_division(records, "Juniors")
    assert [b.event_name for b in parsed.activity_queue] == ["Color War"]
    assert [b.event_name for b in parsed.fixed_blocks] == ["Davening", "Assembly", "Snacks"]
    assert parsed.wall_time is None


def test_explicit_role_wins_over_name_matching():
    records = [
        block("Juniors", "9:00am", "10:00am", "Lunch Prep Cooking", "activity", role="activity"),
        block("Juniors", "10:00am", "11:00am", "Swim", "slot", role="fixed"),
        block("Juniors", "4:00pm", "4:30pm", "Bus Pickup", "custom", role="wall"),
    ]
    parsed = parse_template_for_division(records, "Juniors")
    assert [b.event_name for b in parsed.activity_queue] == ["Lunch Prep Cooking"]
    assert parsed.wall_time == 960
    assert parsed.wall_block.event_name == "Bus Pickup"


def test_split_halves_land_in_fixed_blocks():
    records = [
        block("Juniors", "9:00am", "10:00am", "Swim / Art", "split"),
        block("Juniors", "2:30pm", "3:00pm", "Dismissal", "pinned"),
    ]
    parsed = parse_template_for_division(records, "Juniors")
    halves = [b for b in parsed.fixed_blocks if b.role == BlockRole.split_half]
    assert [h.event_name for h in halves] == ["Swim", "Art"]
    assert parsed.activity_queue == []
    assert parsed.block_starts == [540, 570, 870]


def test_other_divisions_are_ignored():
    records = RAINY_JUNIORS + [block("Seniors", "9:00am", "10:00am", "Tennis")]
    assert [b.event_name for b in parse_template_for_division(records, "Seniors").activity_queue] == ["Tennis"]


def test_find_wall_falls_back_to_name_for_untagged_blocks():
    blocks = [
        TimeBlock("Juniors", 540, 600, "Swim", block_type="slot"),
        TimeBlock("Juniors", 870, 900, "Dismissal", block_type="pinned"),
    ]
    assert find_wall(blocks).start_minute == 870
    assert find_wall(blocks[:1]) is None
