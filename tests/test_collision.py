import math

import pytest

from board import Peg
from collision import (
    BallState, CooldownTable, PegHit, Steering, detect_and_handle_peg_collisions,
    handle_bucket_physics, handle_wall_collisions,
)
from constants import COLLISION_RADIUS, COOLDOWN_FRAMES, RESTITUTION
from rng import create_rng


def _collide(pegs, cooldowns, rng, old, new, frame, randomness=0.1):
    return detect_and_handle_peg_collisions(
        BallState(*new), BallState(*old), pegs, cooldowns, frame, randomness, rng
    )


def test_cooldown_suppresses_repeat_hits():
    """A peg hit on frame 0 registers again only from frame 10."""

    pegs = [Peg(0, 0, 100.0, 100.0)]
    cooldowns = CooldownTable.for_pegs(pegs)
    rng = create_rng(12345)
    top = 100 - COLLISION_RADIUS

    first = _collide(pegs, cooldowns, rng, (100, 95, 0, 10), (100, top, 0, 10), 0)
    assert first.pegs_hit == (PegHit(0, 0),)

    second = _collide(pegs, cooldowns, rng, (101, top, 0.5, 5), (102, top + 1, 0.5, 5), 1)
    assert second.pegs_hit == ()

    third = _collide(pegs, cooldowns, rng, (103, top + 1, 1, 3), (104, top + 2, 1, 3), 9)
    assert third.pegs_hit == ()

    fourth = _collide(pegs, cooldowns, rng, (105, top + 2, 1.5, 2), (106, top + 3, 1.5, 2), 10)
    assert fourth.pegs_hit == (PegHit(0, 0),)


def test_contact_inside_cooldown_is_still_resolved():
    pegs = [Peg(0, 0, 100.0, 100.0)]
    cooldowns = CooldownTable.for_pegs(pegs)
    cooldowns.record(0, 0, 0)

    result = _collide(pegs, cooldowns, create_rng(1), (100, 80, 0, 60), (100, 90, 0, 60), 3)

    assert result.pegs_hit == ()
    assert result.hit_peg is None
    assert math.hypot(result.state.x - 100, result.state.y - 100) >= COLLISION_RADIUS
    assert result.state.vy <= 0.0


def test_different_pegs_register_while_another_cools():
    pegs = [Peg(0, 0, 100.0, 100.0), Peg(0, 1, 130.0, 100.0)]
    cooldowns = CooldownTable.for_pegs(pegs)
    rng = create_rng(12345)
    top = 100 - COLLISION_RADIUS

    first = _collide(pegs, cooldowns, rng, (98, 95, 5, 10), (100, top, 5, 10), 0)
    assert first.pegs_hit == (PegHit(0, 0),)

    second = _collide(pegs, cooldowns, rng, (128, 98, 5, 10), (130, top, 5, 10), 5)
    assert second.pegs_hit == (PegHit(0, 1),)


def test_cooldowns_are_tracked_per_peg():
    pegs = [Peg(0, 0, 100.0, 100.0), Peg(0, 1, 130.0, 100.0), Peg(0, 2, 160.0, 100.0)]
    cooldowns = CooldownTable.for_pegs(pegs)
    rng = create_rng(12345)
    top = 100 - COLLISION_RADIUS

    _collide(pegs, cooldowns, rng, (98, 95, 5, 10), (100, top, 5, 10), 0)
    _collide(pegs, cooldowns, rng, (128, 98, 5, 10), (130, top, 5, 10), 5)
    _collide(pegs, cooldowns, rng, (158, 98, 5, 10), (160, top, 5, 10), 8)

    assert cooldowns.cooling_pegs(15) == [(0, 2)]

    result = _collide(pegs, cooldowns, rng, (130, top, 0, 5), (130, top + 1, 0, 5), 15)
    assert PegHit(0, 1) in result.pegs_hit


def test_cooldown_table_bookkeeping():
    table = CooldownTable(2, 3)
    assert table.last_hit(1, 2) is None
    assert not table.is_cooling(1, 2, 0)

    table.record(1, 2, 4)
    assert table.last_hit(1, 2) == 4
    assert table.is_cooling(1, 2, 4 + COOLDOWN_FRAMES - 1)
    assert not table.is_cooling(1, 2, 4 + COOLDOWN_FRAMES)


def test_fast_ball_does_not_tunnel_through_peg():
    pegs = [Peg(0, 0, 100.0, 100.0)]
    cooldowns = CooldownTable.for_pegs(pegs)

    # One tick carries the centre straight through the peg
    result = _collide(pegs, cooldowns, create_rng(3), (100, 60, 0, 600), (100, 140, 0, 600), 0)

    assert result.pegs_hit == (PegHit(0, 0),)
    assert result.state.y < 100 - COLLISION_RADIUS + 1e-9
    assert result.state.vy < 0.0


def test_miss_leaves_state_untouched():
    pegs = [Peg(0, 0, 100.0, 100.0)]
    new = BallState(50, 40, 0, 100)
    result = detect_and_handle_peg_collisions(
        new, BallState(50, 30, 0, 100), pegs, CooldownTable.for_pegs(pegs), 0, 0.5, create_rng(1)
    )
    assert result.state == new
    assert result.pegs_hit == ()


def test_bounce_uses_one_draw_per_registered_hit():
    pegs = [Peg(0, 0, 100.0, 100.0)]
    rng = create_rng(8)
    reference = rng.copy()

    _collide(pegs, CooldownTable.for_pegs(pegs), rng, (100, 80, 0, 200), (100, 88, 0, 200), 0)

    reference.next()
    assert rng.next() == reference.next()


def test_steering_pushes_toward_target():
    pegs = [Peg(0, 0, 100.0, 100.0)]
    start, end = BallState(100, 80, 0, 200), BallState(100, 88, 0, 200)

    plain = detect_and_handle_peg_collisions(
        end, start, pegs, CooldownTable.for_pegs(pegs), 0, 0.0, create_rng(4)
    )
    steered = detect_and_handle_peg_collisions(
        end, start, pegs, CooldownTable.for_pegs(pegs), 0, 0.0, create_rng(4),
        Steering(target_x=300.0, slot_width=50.0, strength=2.0)
    )
    assert steered.state.vx > plain.state.vx


def test_steering_nudge_saturates():
    steering = Steering(target_x=300.0, slot_width=50.0, strength=1.0, nudge=60.0)
    assert steering.horizontal_nudge(0.0, 1.0) == pytest.approx(60.0)
    assert steering.horizontal_nudge(275.0, 1.0) == pytest.approx(30.0)
    assert steering.horizontal_nudge(600.0, 0.5) == pytest.approx(-30.0)


def test_side_walls_reflect():
    state, hit = handle_wall_collisions(BallState(5, 100, -50, 10), 21, 350)
    assert hit == 'left'
    assert state.x == 21
    assert state.vx == pytest.approx(50 * RESTITUTION)

    state, hit = handle_wall_collisions(BallState(360, 100, 40, 10), 21, 350)
    assert hit == 'right'
    assert state.x == 350
    assert state.vx == pytest.approx(-40 * RESTITUTION)

    state, hit = handle_wall_collisions(BallState(100, 100, 40, 10), 21, 350)
    assert hit is None


def test_bucket_wall_confines_ball(default_board):
    result = handle_bucket_physics(BallState(60, 450, 100, 50), default_board, create_rng(1))

    _, right = default_board.slot_bounds(0)
    assert result.bucket_wall_hit == 'right'
    assert result.state.x == pytest.approx(right - 3 - 9)
    assert result.state.vx == pytest.approx(-100 * 0.75 * 0.6)


def test_bucket_floor_bounce_and_settle(default_board):
    floor = default_board.slots.bucket_floor_y
    x = default_board.slot_center(2)

    bounce = handle_bucket_physics(BallState(x, floor + 2, 0, 400), default_board, create_rng(1))
    assert bounce.bucket_floor_hit
    assert bounce.state.y == floor
    assert bounce.state.vy == pytest.approx(-400 * 0.75 * 0.5)
    assert not bounce.settled

    rest = handle_bucket_physics(BallState(x, floor, 2, 0), default_board, create_rng(1))
    assert rest.settled
    assert not rest.bucket_floor_hit


def test_above_bucket_zone_is_untouched(default_board):
    state = BallState(100, 300, 10, 10)
    result = handle_bucket_physics(state, default_board, create_rng(1))
    assert result.state == state
    assert not result.settled
