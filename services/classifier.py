"""Safety band classification for temperature readings."""

from __future__ import annotations

import math
import random
from enum import Enum
from typing import Optional

MIN_SAFE = 2.0
MAX_SAFE = 8.0
# Upper end of the range synthesized for above-band alerts.
SYNTHESIS_HEADROOM = 4.0


class Verdict(str, Enum):
    in_safe_range = "in_safe_range"
    below_minimum = "below_minimum"
    above_maximum = "above_maximum"


def classify(temperature_c: float) -> Verdict:
    """Place a temperature relative to the inclusive ``[MIN_SAFE, MAX_SAFE]`` band."""
    if temperature_c < MIN_SAFE:
        return Verdict.below_minimum
    if temperature_c > MAX_SAFE:
        return Verdict.above_maximum
    return Verdict.in_safe_range


def is_alert(verdict: Verdict) -> bool:
    return verdict is not Verdict.in_safe_range


def synthesize_temperature(alert_flag: bool, rng: Optional[random.Random] = None) -> float:
    """Produce a stand-in temperature consistent with ``alert_flag``.

    Used only when the store omits a measured value. Alerting values are
    drawn from ``[0, MIN_SAFE)`` or ``(MAX_SAFE, MAX_SAFE + SYNTHESIS_HEADROOM]``
    with equal probability; non-alerting values from ``[MIN_SAFE, MAX_SAFE]``.
    """
    source = rng if rng is not None else random.Random()
    if not alert_flag:
        return source.uniform(MIN_SAFE, MAX_SAFE)

    if source.random() < 0.5:
        # random() is in [0, 1) so the result stays strictly below MIN_SAFE.
        return source.random() * MIN_SAFE
    value = MAX_SAFE + (1.0 - source.random()) * SYNTHESIS_HEADROOM
    # Tiny offsets round back onto MAX_SAFE, which would read as in-band.
    return max(value, math.nextafter(MAX_SAFE, math.inf))
