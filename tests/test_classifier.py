"""Unit tests for safety band classification and temperature synthesis."""

from __future__ import annotations

import random

import pytest

from services.classifier import (
    MAX_SAFE,
    MIN_SAFE,
    Verdict,
    classify,
    is_alert,
    synthesize_temperature,
)


@pytest.mark.parametrize("value", [2.0, 2.01, 5.0, 7.99, 8.0])
def test_values_inside_band_are_safe(value: float) -> None:
    assert classify(value) is Verdict.in_safe_range
    assert is_alert(classify(value)) is False


@pytest.mark.parametrize("value", [-5.0, 0.0, 1.99])
def test_values_below_band(value: float) -> None:
    assert classify(value) is Verdict.below_minimum
    assert is_alert(classify(value)) is True


@pytest.mark.parametrize("value", [8.01, 12.0, 40.0])
def test_values_above_band(value: float) -> None:
    assert classify(value) is Verdict.above_maximum
    assert is_alert(classify(value)) is True


def test_synthesized_alert_values_fall_outside_band() -> None:
    rng = random.Random(1234)

    samples = [synthesize_temperature(True, rng) for _ in range(5000)]

    assert all(value < MIN_SAFE or value > MAX_SAFE for value in samples)
    assert all(0.0 <= value <= MAX_SAFE + 4.0 for value in samples)
    # Both sub-ranges are used.
    assert any(value < MIN_SAFE for value in samples)
    assert any(value > MAX_SAFE for value in samples)


def test_synthesized_normal_values_fall_inside_band() -> None:
    rng = random.Random(99)

    samples = [synthesize_temperature(False, rng) for _ in range(5000)]

    assert all(MIN_SAFE <= value <= MAX_SAFE for value in samples)


def test_synthesis_is_deterministic_with_seeded_source() -> None:
    first = [synthesize_temperature(True, random.Random(7)) for _ in range(3)]
    second = [synthesize_temperature(True, random.Random(7)) for _ in range(3)]

    assert first == second


class _ExtremeRandom(random.Random):
    """Always returns the largest value ``random()`` can produce."""

    def random(self) -> float:
        return 1.0 - 2**-53


def test_synthesis_stays_outside_band_at_range_edges() -> None:
    # random() close to 1 selects the upper sub-range with the smallest offset.
    value = synthesize_temperature(True, _ExtremeRandom())

    assert value > MAX_SAFE
    assert classify(value) is Verdict.above_maximum
