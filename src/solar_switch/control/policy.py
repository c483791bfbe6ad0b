"""Switching policy: low-cost window membership and surplus hysteresis.

The hysteresis is asymmetric. While the load runs its draw is already part of
the meter reading, so it stays on as long as ``demand <= threshold``. Before
switching it on the draw is not yet visible, so the load is only started when
``demand + load_kw <= threshold``. Both comparisons are inclusive: a reading
exactly at the threshold counts as surplus.
"""

from __future__ import annotations

from solar_switch.control.modes import ControllerMode


def in_value_window(hour: int, start_hour: int, end_hour: int) -> bool:
    """Check whether ``hour`` falls in the half-open window [start_hour, end_hour).

    A window whose start is later than its end wraps past midnight
    (23-7 contains 23 and 5). Equal hours mean no window.
    """
    if start_hour == end_hour:
        return False
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour


def has_surplus(mode: ControllerMode, demand_kw: float, load_kw: float, threshold_kw: float) -> bool:
    """Apply the surplus test appropriate to the current mode."""
    if mode == ControllerMode.ON:
        return demand_kw <= threshold_kw
    if mode == ControllerMode.OFF:
        return demand_kw + load_kw <= threshold_kw
    # Leaving the value window: the load's draw is in the reading, switch off
    # and re-evaluate from OFF on the next cycle.
    return False


def decide(
    mode: ControllerMode,
    demand_kw: float,
    load_kw: float,
    threshold_kw: float,
) -> ControllerMode:
    """Return the target mode for a standard-rate cycle."""
    if has_surplus(mode, demand_kw, load_kw, threshold_kw):
        return ControllerMode.ON
    return ControllerMode.OFF
