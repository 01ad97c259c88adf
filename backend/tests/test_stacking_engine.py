"""
Stacking engine: placement, gap absorption/distribution, squeeze repair,
coupling closure, and the wall/contiguity guarantees.
"""
from campday.services.prep_expander import expand_prep_blocks
from campday.services.stacking_engine import (
    PlacedBlock,
    _squeeze_repair,
    compress_earlier_activities,
    recalculate_positions,
    stack_schedule,
)
from campday.services.timeline import BlockRole, TimeBlock, expand_split_tiles, flex_window


def act(name, start, end, **extra):
    return TimeBlock(
        "Juniors", start, end, name, role=BlockRole.activity, block_type="slot", flex=flex_window(end - start), **extra
    )


def fixed(name, start, end):
    return TimeBlock("Juniors", start, end, name, role=BlockRole.fixed, block_type="pinned")


def split_half(name, sibling, start, end, half):
    return TimeBlock(
        "Juniors", start, end, name, role=BlockRole.split_half, block_type="split_half",
        split_half=half, split_sibling_name=sibling, split_parent_event="Swim / Art",
    )


DISMISSAL = TimeBlock("Juniors", 200, 230, "Dismissal", role=BlockRole.wall, block_type="pinned")


def spans(blocks):
    return [(b.event_name, b.start_minute, b.end_minute) for b in blocks]


# ============================================================================
# Worked examples
# ============================================================================


def test_example_shrinks_last_activity_to_its_floor():
    result = stack_schedule(0, 90, [act("A", 0, 60), act("B", 60, 100)], [], "Juniors")

    assert spans(result.blocks) == [("A", 0, 60), ("B", 60, 90)]
    assert result.dropped_count == 0
    assert result.blocks[1].flex_applied
    assert not result.blocks[0].flex_applied


def test_example_drops_activity_below_min_and_closes_gap():
    result = stack_schedule(0, 80, [act("A", 0, 60), act("B", 60, 100)], [], "Juniors", wall_block=DISMISSAL)

    # A is placed at 60, then stretched to its max (75) and finally the
    # last-resort overflow closes the remaining 5 minutes.
    assert spans(result.blocks) == [("A", 0, 80), ("Dismissal", 80, 110)]
    assert result.dropped_count == 1
    assert result.dropped_names == ["B"]


def test_example_large_gap_stretches_to_max():
    result = stack_schedule(0, 75, [act("A", 0, 60)], [], "Juniors")
    assert spans(result.blocks) == [("A", 0, 75)]
    assert result.blocks[0].flex_applied
    assert result.blocks[0].original_duration == 60


def test_small_gap_absorbed_by_last_activity():
    result = stack_schedule(0, 65, [act("A", 0, 60)], [], "Juniors")
    assert spans(result.blocks) == [("A", 0, 65)]


def test_large_gap_split_evenly_within_headroom():
    result = stack_schedule(0, 120, [act("A", 0, 60), act("B", 60, 100)], [], "Juniors")
    assert spans(result.blocks) == [("A", 0, 70), ("B", 70, 120)]


def test_fixed_blocks_keep_their_length_and_template_order():
    queue = [act("A", 0, 60), act("B", 90, 150)]
    result = stack_schedule(0, 150, queue, [fixed("Lunch", 60, 90)], "Juniors")
    assert spans(result.blocks) == [("A", 0, 60), ("Lunch", 60, 90), ("B", 90, 150)]


def test_activity_goes_ahead_of_fixed_block_on_same_start():
    result = stack_schedule(0, 70, [act("B", 60, 100)], [fixed("Lunch", 60, 90)], "Juniors")
    assert [b.event_name for b in result.blocks] == ["B", "Lunch"]


def test_past_items_are_not_restacked():
    queue = [act("Early", 0, 30), act("A", 30, 90)]
    result = stack_schedule(30, 90, queue, [fixed("Breakfast", 0, 20)], "Juniors")
    assert spans(result.blocks) == [("A", 30, 90)]


def test_wall_block_is_synthesized_at_the_wall():
    result = stack_schedule(0, 200, [act("A", 0, 200)], [DISMISSAL], "Juniors", wall_block=DISMISSAL)
    assert spans(result.blocks) == [("A", 0, 200), ("Dismissal", 200, 230)]
    assert result.blocks[-1].role == BlockRole.wall
    assert all(b.rebuilt for b in result.blocks)


def test_no_room_returns_empty_result():
    result = stack_schedule(100, 100, [act("A", 100, 160)], [], "Juniors", wall_block=DISMISSAL)
    assert result.blocks == []
    assert result.dropped == []


def test_gap_with_no_activities_is_left_open():
    result = stack_schedule(0, 100, [], [fixed("Lunch", 0, 30)], "Juniors")
    assert spans(result.blocks) == [("Lunch", 0, 30)]


# ============================================================================
# Coupling
# ============================================================================


def test_prep_without_room_for_main_is_dropped_too():
    prep = act("Canoe (Prep)", 0, 60, is_prep_block=True, main_activity_name="Canoe")
    prep.flex = flex_window(20)
    main = act("Canoe", 0, 60, is_main_block=True, has_prep=True, main_activity_name="Canoe")

    result = stack_schedule(0, 50, [prep, main], [], "Juniors")
    assert result.blocks == []
    assert sorted(result.dropped_names) == ["Canoe", "Canoe (Prep)"]


def test_prep_and_main_stack_back_to_back():
    prep = act("Canoe (Prep)", 0, 60, is_prep_block=True, main_activity_name="Canoe")
    prep.flex = flex_window(20)
    main = act("Canoe", 0, 60, is_main_block=True, has_prep=True, main_activity_name="Canoe")

    result = stack_schedule(0, 80, [prep, main], [], "Juniors")
    assert spans(result.blocks) == [("Canoe (Prep)", 0, 20), ("Canoe", 20, 80)]
    assert result.blocks[1].has_prep


def test_main_without_prep_survives_standalone():
    main = act("Canoe", 0, 60, is_main_block=True, has_prep=True, main_activity_name="Canoe")
    result = stack_schedule(0, 60, [main], [], "Juniors")
    assert spans(result.blocks) == [("Canoe", 0, 60)]
    assert not result.blocks[0].has_prep
    assert main.has_prep  # input untouched


def test_split_half_without_sibling_is_dropped():
    halves = [split_half("Swim", "Art", 60, 90, 1), split_half("Art", "Swim", 90, 120, 2)]
    result = stack_schedule(0, 110, [act("A", 0, 60)], halves, "Juniors")

    assert spans(result.blocks) == [("A", 0, 110)]
    assert sorted(b.event_name for b in result.dropped) == ["Art", "Swim"]


def test_split_halves_stay_together_when_both_fit():
    halves = [split_half("Swim", "Art", 60, 90, 1), split_half("Art", "Swim", 90, 120, 2)]
    result = stack_schedule(0, 120, [act("A", 0, 60)], halves, "Juniors")
    assert spans(result.blocks) == [("A", 0, 60), ("Swim", 60, 90), ("Art", 90, 120)]


def test_repeated_prep_pair_drops_the_orphan_prep_as_well():
    queue = expand_prep_blocks([act("Canoe", 0, 60), act("Canoe", 60, 120)], {"Canoe": 10}.get)

    result = stack_schedule(0, 124, queue, [], "Juniors")

    assert [b.event_name for b in result.blocks] == ["Canoe (Prep)", "Canoe"]
    assert result.blocks[0].start_minute == 0
    assert result.blocks[0].end_minute == result.blocks[1].start_minute
    assert result.blocks[1].end_minute == 124
    assert sorted(result.dropped_names) == ["Canoe", "Canoe (Prep)"]


def test_repeated_split_tile_drops_both_halves_of_the_cut_pair():
    tiles = [
        TimeBlock("Juniors", 0, 60, "Swim / Art", block_type="split"),
        TimeBlock("Juniors", 60, 120, "Swim / Art", block_type="split"),
    ]
    halves = expand_split_tiles(tiles)
    assert [b.pair_origin for b in halves] == [0, 0, 60, 60]

    result = stack_schedule(0, 100, [], halves, "Juniors")

    assert [b.event_name for b in result.blocks] == ["Swim", "Art"]
    assert sorted(b.event_name for b in result.dropped) == ["Art", "Swim"]


# ============================================================================
# Squeeze repair
# ============================================================================


def _placed(block, duration):
    return PlacedBlock(block=block, placed_duration=duration)


def test_compress_earlier_activities_is_all_or_nothing():
    placed = [_placed(act("A", 0, 60), 60), _placed(act("B", 60, 100), 40), _placed(act("C", 100, 140), 20)]

    assert compress_earlier_activities(placed, 2, 30) == 0
    assert [p.placed_duration for p in placed] == [60, 40, 20]

    assert compress_earlier_activities(placed, 2, 10) == 10
    assert [p.placed_duration for p in placed] == [60, 30, 20]


def test_squeeze_repair_borrows_from_earlier_activity():
    placed = [_placed(act("A", 0, 60), 60), _placed(act("C", 60, 100), 20)]
    recalculate_positions(placed, 0)
    dropped = []

    _squeeze_repair(placed, 0, 80, dropped, "Juniors")

    assert [(p.block.event_name, p.placed_start, p.placed_end) for p in placed] == [("A", 0, 50), ("C", 50, 80)]
    assert dropped == []


def test_squeeze_repair_drops_and_redistributes_when_nothing_to_borrow():
    placed = [_placed(act("A", 0, 60), 45), _placed(act("C", 60, 100), 20)]
    recalculate_positions(placed, 0)
    dropped = []

    _squeeze_repair(placed, 0, 80, dropped, "Juniors")

    assert [(p.block.event_name, p.placed_start, p.placed_end) for p in placed] == [("A", 0, 80)]
    assert [b.event_name for b in dropped] == ["C"]


# ============================================================================
# Properties
# ============================================================================


def test_wall_contiguity_and_flex_hold_across_wall_times():
    queue = [act("A", 0, 60), act("B", 60, 100), act("C", 130, 175)]
    fixed_blocks = [fixed("Lunch", 100, 130)]

    for wall in range(50, 260, 7):
        result = stack_schedule(0, wall, queue, fixed_blocks, "Juniors", wall_block=DISMISSAL)
        body = [b for b in result.blocks if b.role != BlockRole.wall]

        cursor = 0
        for b in body:
            assert b.start_minute == cursor, f"gap/overlap before {b.event_name} at wall={wall}"
            cursor = b.end_minute
        assert cursor == wall, f"timeline does not reach the wall at wall={wall}"
        assert all(b.end_minute <= wall for b in body)

        activities = [b for b in body if b.role == BlockRole.activity]
        for b in activities:
            assert b.duration >= b.flex.min, f"{b.event_name} shrunk below min at wall={wall}"
        for b in activities[:-1]:
            assert b.duration <= b.flex.max, f"{b.event_name} over max at wall={wall}"

        assert result.blocks[-1].start_minute == wall
