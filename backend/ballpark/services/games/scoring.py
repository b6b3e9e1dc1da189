import math
import random
from typing import Any, List, Optional, Sequence

from ballpark.models import (
    FOUL,
    HIT,
    HOME_RUN,
    STRIKE,
    FlashEvent,
    FlashSequence,
    HitResult,
)


FLASH_COUNT = 2
BASE_INTERVAL_MS = 1000.0
ERROR_SCALE_MS = 1000.0
MIN_SPEED = 0.5
MAX_SPEED = 1.5
CPU_NOISE_MS = 100.0


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def generate_flash_sequence(pitch_speed: float = 1.0, rng: Optional[random.Random] = None) -> FlashSequence:
    """Build the timed target prompts for one pitch or swing attempt.

    Flashes are spaced ``BASE_INTERVAL_MS / pitch_speed`` apart, so a faster
    pitch leaves the batter less time. Positions are uniform in [0.1, 0.9].
    """
    rng = rng or random
    if not pitch_speed or pitch_speed <= 0 or not math.isfinite(pitch_speed):
        pitch_speed = 1.0
    interval = BASE_INTERVAL_MS / pitch_speed
    return [
        FlashEvent(
            time=i * interval,
            x=rng.random() * 0.8 + 0.1,
            y=rng.random() * 0.8 + 0.1,
        )
        for i in range(FLASH_COUNT)
    ]


def accuracy(timings: Sequence[float], sequence: FlashSequence) -> float:
    """1 minus the summed absolute timing error in seconds, floored at 0."""
    total_error = 0.0
    for timing, flash in zip(timings, sequence):
        total_error += abs(timing - flash.time)
    return max(0.0, 1.0 - total_error / ERROR_SCALE_MS)


def speed(timings: Sequence[float]) -> float:
    """Speed of a pitch (or power of a swing) from the first two taps.

    Returns 0 for fewer than two taps or a non-positive interval.
    """
    if len(timings) < 2:
        return 0.0
    interval = timings[1] - timings[0]
    if interval <= 0:
        return 0.0
    value = BASE_INTERVAL_MS / interval
    if not math.isfinite(value):
        return 0.0
    return clamp(value, MIN_SPEED, MAX_SPEED)


# A swing is scored with the same formulas as a pitch
power = speed


def resolve_hit(swing_accuracy: float, swing_power: float, pitch_speed: float, pitch_accuracy: float) -> HitResult:
    hit_chance = (swing_accuracy + pitch_accuracy) / 2
    hit_power = (swing_power + pitch_speed) / 2

    if hit_chance < 0.3:
        return HitResult(STRIKE, 0.0, hit_chance)
    if hit_chance < 0.6:
        return HitResult(FOUL, hit_power * 0.5, hit_chance)
    if hit_chance < 0.8:
        return HitResult(HIT, hit_power, hit_chance)
    return HitResult(HOME_RUN, hit_power * 1.5, hit_chance)


def synthesize_timings(sequence: FlashSequence, rng: Optional[random.Random] = None) -> List[float]:
    """CPU input: each flash's nominal time plus uniform noise of +/-100ms."""
    rng = rng or random
    return [flash.time + rng.uniform(-CPU_NOISE_MS, CPU_NOISE_MS) for flash in sequence]


def parse_timings(raw: Any) -> Optional[List[float]]:
    """Coerce a client timing payload to floats; None if it is malformed."""
    if not isinstance(raw, (list, tuple)):
        return None
    timings = []
    for value in raw:
        if isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number):
            return None
        timings.append(number)
    return timings


def parse_sequence(raw: Any) -> Optional[FlashSequence]:
    """Rebuild a flash sequence echoed back by a client; None if malformed."""
    if not isinstance(raw, (list, tuple)):
        return None
    sequence = []
    for item in raw:
        if not isinstance(item, dict):
            return None
        position = item.get('position') or {}
        try:
            flash = FlashEvent(
                time=float(item.get('time')),
                x=float(position.get('x', 0.0)),
                y=float(position.get('y', 0.0)),
            )
        except (TypeError, ValueError, AttributeError):
            return None
        if not math.isfinite(flash.time):
            return None
        sequence.append(flash)
    return sequence
