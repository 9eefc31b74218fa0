"""
Machine health derivation formulas.

Per telemetry reading:
  vibration_rms  sqrt((vx² + vy² + vz²) / 3) over the mechanical axes
  avg_load       weighted current / rpm / power-factor ratio, percent, [0, 150]
  health_score   100 − 3·vibration_rms − 0.1·avg_load, truncated, [0, 100]
  runtime_hours  carried forward, grows by elapsed hours while rpm > 0

All inputs may be None (absent sub-reading). Values that are present but not
finite numbers raise MalformedReadingError so the caller can skip the row.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN

from ciip_engine.core.constants import (
    AVG_LOAD_MAX,
    HEALTH_SCORE_MAX,
    LOAD_PENALTY,
    LOAD_WEIGHTS,
    VIBRATION_PENALTY,
)
from ciip_engine.core.exceptions import MalformedReadingError

# 1e-9 h, about 3.6 microseconds
RUNTIME_QUANTUM = Decimal("0.000000001")
LOAD_QUANTUM = Decimal("0.01")


def to_float(value) -> float | None:
    """Coerce a stored reading to float; None stays None."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedReadingError(f"Boolean is not a numeric reading: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError, ArithmeticError) as e:
        raise MalformedReadingError(f"Unparseable reading: {value!r}") from e
    if not math.isfinite(number):
        raise MalformedReadingError(f"Non-finite reading: {value!r}")
    return number


def clamp(value: float, lower: float, upper: float) -> float:
    """Bound value to [lower, upper]; NaN maps to lower."""
    if math.isnan(value):
        return lower
    return max(lower, min(upper, value))


def _ratio(value: float, maximum: float | None) -> float:
    if not maximum or maximum <= 0:
        return 0.0
    ratio = value / maximum
    return 0.0 if math.isnan(ratio) else ratio


def vibration_rms(mechanical) -> float:
    """RMS of the three vibration axes; 0 without a mechanical reading."""
    if mechanical is None:
        return 0.0
    axes = [
        to_float(mechanical.vibration_x) or 0.0,
        to_float(mechanical.vibration_y) or 0.0,
        to_float(mechanical.vibration_z) or 0.0,
    ]
    # hypot avoids overflow in the squares
    return math.hypot(*axes) / math.sqrt(3)


def max_phase_current(electrical) -> float | None:
    if electrical is None:
        return None
    currents = [to_float(c) for c in electrical.phase_currents]
    present = [c for c in currents if c is not None]
    return max(present) if present else None


def average_phase_current(electrical) -> float:
    currents = [to_float(c) for c in electrical.phase_currents]
    present = [c for c in currents if c is not None]
    if not present:
        return 0.0
    # fsum keeps huge magnitudes from overflowing before the division
    return math.fsum(c / len(present) for c in present)


def average_load(electrical, mechanical, max_current: float | None, max_rpm: float | None) -> float:
    """
    Load ratio relative to the machine's observed maxima, as a percentage.

    Both electrical and mechanical readings are required; otherwise 0.
    """
    if electrical is None or mechanical is None:
        return 0.0

    current_ratio = _ratio(average_phase_current(electrical), max_current)
    rpm_ratio = _ratio(to_float(mechanical.rpm) or 0.0, max_rpm)
    power_factor = to_float(electrical.power_factor) or 0.0

    load = (
        LOAD_WEIGHTS["current"] * current_ratio
        + LOAD_WEIGHTS["rpm"] * rpm_ratio
        + LOAD_WEIGHTS["power_factor"] * power_factor
    ) * 100.0
    return clamp(load, 0.0, float(AVG_LOAD_MAX))


def health_score(vib_rms: float, avg_load: float) -> int:
    score = HEALTH_SCORE_MAX - VIBRATION_PENALTY * vib_rms - LOAD_PENALTY * avg_load
    return int(clamp(score, 0.0, float(HEALTH_SCORE_MAX)))


def accumulate_runtime(
    previous_runtime: Decimal | None,
    previous_at: datetime | None,
    recorded_at: datetime,
    rpm: float | None,
) -> Decimal:
    """
    Runtime carried forward from the previous record, plus the elapsed hours
    when the machine is turning. Out-of-order or repeated timestamps add nothing.
    """
    runtime = Decimal(previous_runtime) if previous_runtime is not None else Decimal(0)
    if previous_at is None or not rpm or rpm <= 0:
        return runtime.quantize(RUNTIME_QUANTUM, rounding=ROUND_HALF_EVEN)

    elapsed_seconds = (recorded_at - previous_at).total_seconds()
    if elapsed_seconds > 0:
        runtime += Decimal(str(elapsed_seconds)) / Decimal(3600)
    return runtime.quantize(RUNTIME_QUANTUM, rounding=ROUND_HALF_EVEN)


def quantize_load(avg_load: float) -> Decimal:
    return Decimal(str(avg_load)).quantize(LOAD_QUANTUM, rounding=ROUND_HALF_EVEN)
