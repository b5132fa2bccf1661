import pytest

from board import (
    BORDER_WIDTH, COLLISION_RADIUS, build_board, board_from_config,
    calculate_slot_dimensions, determine_landed_slot, generate_peg_layout,
    get_drop_zone_center, get_drop_zone_range, get_slot_boundaries, slot_bounds,
)
from errors import ConfigurationError, GeometryError


def test_peg_layout_is_staggered():
    pegs = generate_peg_layout(375, 500, 10)

    assert len(pegs) == 65
    row0 = [p for p in pegs if p.row == 0]
    row1 = [p for p in pegs if p.row == 1]
    assert len(row0) == 7
    assert len(row1) == 6
    spacing = row0[1].x - row0[0].x
    assert row1[0].x - row0[0].x == pytest.approx(spacing / 2)
    assert row0[0].x == pytest.approx(36.0)
    assert row0[-1].x == pytest.approx(335.0)


def test_peg_layout_is_stable():
    assert generate_peg_layout(375, 500, 10) == generate_peg_layout(375, 500, 10)


def test_peg_rows_are_evenly_spaced():
    pegs = generate_peg_layout(375, 500, 10)
    ys = sorted({p.y for p in pegs})

    assert len(ys) == 10
    assert ys[0] == pytest.approx(500 * 0.65 / 11 + BORDER_WIDTH + 20)
    gaps = [b - a for a, b in zip(ys, ys[1:])]
    assert max(gaps) == pytest.approx(min(gaps))


def test_pegs_stay_inside_content_width():
    pegs = generate_peg_layout(340, 500, 8)
    content_width = 340 - 2 * 2

    assert all(BORDER_WIDTH < p.x < content_width - BORDER_WIDTH for p in pegs)


@pytest.mark.parametrize("width, height, rows", [(0, 500, 10), (375, -1, 10), (375, 500, 0)])
def test_invalid_layout_inputs(width, height, rows):
    with pytest.raises(ConfigurationError):
        generate_peg_layout(width, height, rows)


def test_slot_dimensions(default_board):
    slots = default_board.slots

    assert slots.slot_width == pytest.approx(347 / 6)
    assert slots.bucket_height == 90
    assert slots.bucket_zone_y == 410
    assert slots.bucket_floor_y == 496


def test_narrow_slots_get_taller_buckets():
    slots = calculate_slot_dimensions(375, 500, 8)
    assert slots.slot_width < 50
    assert slots.bucket_height == 95


def test_slot_bounds_tile_playable_width(default_board):
    slots = default_board.slots
    left, _ = slot_bounds(0, slots)
    _, right = slot_bounds(slots.slot_count - 1, slots)

    assert left == BORDER_WIDTH
    assert right == pytest.approx(default_board.content_width - BORDER_WIDTH)
    inner_left, inner_right = get_slot_boundaries(0, slots)
    assert inner_left == left + 3
    assert inner_right == pytest.approx(left + slots.slot_width - 3)


def test_landed_slot_matches_slot_bounds(default_board):
    slots = default_board.slots
    for index in range(slots.slot_count):
        left, right = slot_bounds(index, slots)
        assert determine_landed_slot((left + right) / 2, slots) == index
        assert determine_landed_slot(left + 0.01, slots) == index


def test_landed_slot_is_clamped(default_board):
    assert default_board.landed_slot(-50) == 0
    assert default_board.landed_slot(10_000) == default_board.slot_count - 1


def test_slot_index_out_of_range(default_board):
    with pytest.raises(ConfigurationError):
        default_board.slot_bounds(default_board.slot_count)
    with pytest.raises(ConfigurationError):
        default_board.slot_bounds(-1)


def test_drop_zones():
    low, high = get_drop_zone_range("left", 371)
    assert low == pytest.approx(371 * 0.05)
    assert high == pytest.approx(371 * 0.15)
    assert get_drop_zone_center("center", 371) == pytest.approx(185.5)

    with pytest.raises(ConfigurationError):
        get_drop_zone_range("middle", 371)


def test_too_many_slots_is_a_geometry_error():
    with pytest.raises(GeometryError):
        build_board(375, 500, 10, 30)


def test_buckets_overlapping_pegs_is_a_geometry_error():
    with pytest.raises(GeometryError):
        build_board(375, 150, 10, 6)


def test_geometry_error_is_a_configuration_error():
    assert issubclass(GeometryError, ConfigurationError)


def test_board_is_memoised(default_board):
    assert build_board(375, 500, 10, 6) is default_board


def test_board_leaves_room_between_pegs_and_buckets(default_board):
    lowest = max(p.y for p in default_board.pegs)
    assert default_board.slots.bucket_zone_y > lowest + COLLISION_RADIUS


def test_peg_field_arrays_are_read_only(default_board):
    peg_field = default_board.peg_field
    assert peg_field.shape == (10, 7)
    with pytest.raises(ValueError):
        peg_field.xs[0] = 0.0


def test_board_from_config_defaults(default_board):
    assert board_from_config({}) == default_board
