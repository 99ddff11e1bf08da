"""General utilities for MonthDSS

Contents
--------
- Validation helpers (field-identified, raise monthdss ValidationError)
- Money helpers (minor-unit flooring, tolerance)
- Proportional distribution (capped water-filling)
- Normalization and dispersion statistics
"""

from __future__ import annotations

import math
from typing import Mapping, Optional, Sequence

import numpy as np

from .exceptions import ValidationError

__all__ = [
    # Validation
    "check_non_negative",
    "check_range",
    "check_finite",
    # Money
    "floor_money",
    "money_tolerance",
    # Distribution
    "water_fill",
    # Statistics
    "min_max_normalize",
    "coefficient_of_variation",
    "renormalize_weights",
]

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def check_finite(name: str, value: float, *, entity_id: Optional[str] = None) -> None:
    """Raise if *value* is NaN or infinite."""
    if not math.isfinite(float(value)):
        raise ValidationError(
            f"{name} must be a finite number (got {value}).",
            field=name,
            entity_id=entity_id,
        )


def check_non_negative(name: str, value: float, *, entity_id: Optional[str] = None) -> None:
    """Raise if *value* is negative (strict)."""
    check_finite(name, value, entity_id=entity_id)
    if value < 0:
        raise ValidationError(
            f"{name} must be non-negative (got {value}).",
            field=name,
            entity_id=entity_id,
        )


def check_range(
    name: str,
    value: float,
    low: float,
    high: float,
    *,
    entity_id: Optional[str] = None,
    high_inclusive: bool = True,
) -> None:
    """Raise if *value* lies outside [low, high] (or [low, high) when not inclusive)."""
    check_finite(name, value, entity_id=entity_id)
    upper_ok = value <= high if high_inclusive else value < high
    if value < low or not upper_ok:
        bracket = "]" if high_inclusive else ")"
        raise ValidationError(
            f"{name} must be in [{low:g}, {high:g}{bracket} (got {value}).",
            field=name,
            entity_id=entity_id,
        )


# ---------------------------------------------------------------------------
# Money helpers
# ---------------------------------------------------------------------------

def floor_money(value: float, precision: int) -> float:
    """Round *value* down to *precision* decimals.

    Flooring keeps distributed amounts from exceeding the pool they were
    drawn from.
    """
    scale = 10.0 ** precision
    return math.floor(float(value) * scale + 1e-9) / scale


def money_tolerance(precision: int, magnitude: float = 0.0, terms: int = 1) -> float:
    """One minor currency unit at *precision* decimals.

    When *magnitude* is given, the tolerance never drops below the float
    rounding error of *terms* additions at that magnitude, since a minor
    unit of 1e-6 is not representable next to amounts around 1e11.

    Examples
    --------
    >>> money_tolerance(2)
    0.01
    >>> money_tolerance(6, 1e12, 10) > 1e-6
    True
    """
    unit = 10.0 ** (-precision)
    if not magnitude:
        return unit
    return max(unit, math.ulp(abs(float(magnitude))) * max(int(terms), 1))


# ---------------------------------------------------------------------------
# Distribution
# ---------------------------------------------------------------------------

def water_fill(pool: float, caps: Sequence[float], weights: Sequence[float]) -> np.ndarray:
    """Distribute *pool* proportionally to *weights*, never exceeding *caps*.

    Capacity left by saturated entries is redistributed among the others
    until the pool is exhausted or every entry is capped. Entries with a
    zero cap or zero weight receive nothing. Runs at most ``len(caps)``
    rounds.

    Examples
    --------
    >>> water_fill(100.0, caps=[10.0, 200.0], weights=[1.0, 1.0])
    array([10., 90.])
    """
    caps_arr = np.asarray(caps, dtype=float)
    weights_arr = np.asarray(weights, dtype=float)
    if caps_arr.shape != weights_arr.shape:
        raise ValueError("caps and weights must have the same length.")

    alloc = np.zeros_like(caps_arr)
    if pool <= 0 or caps_arr.size == 0:
        return alloc

    active = (caps_arr > 0) & (weights_arr > 0)
    remaining = float(pool)
    while remaining > 0 and active.any():
        idx = np.flatnonzero(active)
        share = remaining * weights_arr[idx] / weights_arr[idx].sum()
        room = caps_arr[idx] - alloc[idx]
        saturated = share >= room
        if not saturated.any():
            alloc[idx] += share
            break
        full = idx[saturated]
        remaining -= float(room[saturated].sum())
        alloc[full] = caps_arr[full]
        active[full] = False
    return alloc


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

def min_max_normalize(values: Sequence[float]) -> np.ndarray:
    """Scale *values* to [0, 1]; a constant vector maps to zeros."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr
    lo, hi = float(arr.min()), float(arr.max())
    if hi - lo <= 0:
        return np.zeros_like(arr)
    return (arr - lo) / (hi - lo)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population std / mean; 0.0 for empty input or zero mean."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    mean = float(arr.mean())
    if mean == 0:
        return 0.0
    return float(arr.std(ddof=0) / mean)


def renormalize_weights(weights: Mapping[str, float], axes: Sequence[str]) -> dict:
    """Return *weights* over *axes* rescaled to sum to 1.

    Missing axes count as 0. Raises ValidationError on unknown axes,
    negative weights or a non-positive total.
    """
    unknown = sorted(set(weights) - set(axes))
    if unknown:
        raise ValidationError(
            f"unknown criteria {unknown}; expected a subset of {list(axes)}",
            field="criteria_weights",
        )
    raw = np.array([float(weights.get(axis, 0.0)) for axis in axes])
    for axis, value in zip(axes, raw):
        check_non_negative(f"criteria_weights.{axis}", value)
    total = float(raw.sum())
    if total <= 0:
        raise ValidationError(
            "criteria_weights must have a positive sum",
            field="criteria_weights",
        )
    return {axis: float(w) for axis, w in zip(axes, raw / total)}
