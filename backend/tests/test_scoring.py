import math
import random

import pytest

from ballpark.models import FOUL, HIT, HOME_RUN, STRIKE, FlashEvent
from ballpark.services.games.scoring import (
    accuracy,
    generate_flash_sequence,
    parse_sequence,
    parse_timings,
    power,
    resolve_hit,
    speed,
    synthesize_timings,
)


def _sequence(*times):
    return [FlashEvent(time=t, x=0.5, y=0.5) for t in times]


def test_flash_sequence_shape():
    seq = generate_flash_sequence(rng=random.Random(1))
    assert len(seq) == 2
    assert [f.time for f in seq] == [0.0, 1000.0]
    for flash in seq:
        assert 0.1 <= flash.x <= 0.9
        assert 0.1 <= flash.y <= 0.9


def test_flash_sequence_scales_with_pitch_speed():
    assert generate_flash_sequence(1.5)[1].time == pytest.approx(1000 / 1.5)
    assert generate_flash_sequence(0.5)[1].time == pytest.approx(2000)
    # A degenerate pitch speed falls back to the base interval
    assert generate_flash_sequence(0)[1].time == 1000.0


def test_accuracy_perfect_and_floor():
    seq = _sequence(0, 1000)
    assert accuracy([0, 1000], seq) == 1.0
    assert accuracy([100, 1100], seq) == pytest.approx(0.8)
    assert accuracy([900, 2000], seq) == 0.0


def test_accuracy_only_compares_overlapping_samples():
    seq = _sequence(0, 1000)
    assert accuracy([250], seq) == pytest.approx(0.75)
    assert accuracy([0, 1000, 99999], seq) == 1.0


def test_accuracy_non_increasing_as_error_grows():
    seq = _sequence(0, 1000)
    previous = 1.0
    for error in range(0, 1500, 50):
        value = accuracy([error, 1000 + error], seq)
        assert 0.0 <= value <= 1.0
        assert value <= previous
        previous = value


@pytest.mark.parametrize('timings, expected', [
    ([0, 1000], 1.0),
    ([0, 500], 1.5),
    ([0, 4000], 0.5),
    ([200, 1200], 1.0),
])
def test_speed_is_clamped(timings, expected):
    assert speed(timings) == pytest.approx(expected)
    assert power(timings) == speed(timings)


@pytest.mark.parametrize('timings', [[], [100], [500, 500], [800, 100], [0, 1e-320]])
def test_speed_degenerate_input_is_zero(timings):
    value = speed(timings)
    assert value == 0
    assert math.isfinite(value)


def test_speed_random_inputs_stay_in_range():
    rng = random.Random(3)
    for _ in range(200):
        timings = [rng.uniform(-500, 3000) for _ in range(rng.randint(0, 4))]
        value = speed(timings)
        assert value == 0 or 0.5 <= value <= 1.5


@pytest.mark.parametrize('chance, expected', [
    (0.0, STRIKE),
    (0.2999, STRIKE),
    (0.3, FOUL),
    (0.5999, FOUL),
    (0.6, HIT),
    (0.7999, HIT),
    (0.8, HOME_RUN),
    (1.0, HOME_RUN),
])
def test_resolve_hit_boundaries(chance, expected):
    result = resolve_hit(chance, 1.0, 1.0, chance)
    assert result.type == expected
    assert result.accuracy == pytest.approx(chance)


def test_resolve_hit_power_multipliers():
    assert resolve_hit(0.1, 1.5, 1.5, 0.1).power == 0
    assert resolve_hit(0.4, 1.5, 0.5, 0.4).power == pytest.approx(0.5)
    assert resolve_hit(0.7, 1.5, 0.5, 0.7).power == pytest.approx(1.0)
    assert resolve_hit(0.9, 1.5, 0.5, 0.9).power == pytest.approx(1.5)


def test_resolve_hit_averages_pitch_and_swing():
    # Perfect swing against a wild pitch only reaches a foul
    result = resolve_hit(1.0, 1.0, 1.0, 0.0)
    assert result.type == FOUL
    assert result.accuracy == 0.5


def test_synthesized_timings_stay_within_noise():
    seq = _sequence(0, 1000)
    rng = random.Random(5)
    for _ in range(50):
        timings = synthesize_timings(seq, rng)
        assert len(timings) == 2
        assert -100 <= timings[0] <= 100
        assert 900 <= timings[1] <= 1100


def test_parse_timings():
    assert parse_timings([0, '1000', 12.5]) == [0.0, 1000.0, 12.5]
    assert parse_timings([]) == []
    assert parse_timings(None) is None
    assert parse_timings('0,1000') is None
    assert parse_timings([0, 'soon']) is None
    assert parse_timings([0, float('nan')]) is None
    assert parse_timings([True, 1000]) is None


def test_parse_sequence():
    seq = parse_sequence([{'time': 0, 'position': {'x': 0.2, 'y': 0.3}}, {'time': 1000}])
    assert [f.time for f in seq] == [0.0, 1000.0]
    assert (seq[0].x, seq[0].y) == (0.2, 0.3)
    assert parse_sequence([{'position': {}}]) is None
    assert parse_sequence([1000]) is None
    assert parse_sequence({'time': 0}) is None
