"""Round scoring. Both functions are pure and bounded to [0, 200]."""

from __future__ import annotations

import math

MAX_GUESSER_POINTS = 200
MAX_DRAWER_POINTS = 200


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def guesser_score(round_start_ms: int, guess_ms: int, round_time_seconds: int) -> int:
    """Points for a correct guess, 200 at the start of the round down to 0 at the end."""
    if round_time_seconds <= 0:
        return 0
    elapsed = (guess_ms - round_start_ms) / 1000
    ratio = _clamp(1 - elapsed / round_time_seconds)
    return math.floor(MAX_GUESSER_POINTS * ratio)


def drawer_score(
    correct_count: int,
    total_guessers: int,
    avg_guess_seconds: float,
    round_time_seconds: int,
) -> int:
    """Points for the drawer: up to 100 for coverage plus up to 100 for speed."""
    if total_guessers <= 0 or correct_count <= 0 or round_time_seconds <= 0:
        return 0
    coverage = math.floor(100 * _clamp(correct_count / total_guessers))
    speed = math.floor(100 * _clamp(1 - avg_guess_seconds / round_time_seconds))
    return coverage + speed
