"""Wall-clock helpers for evaluating the low-cost rate window."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Falls back to the host's local zone, then UTC. Utility rate windows are
    published in local time, so a misconfigured name is logged loudly.
    """
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone '%s', using the host's local time for the rate window", tz_name)

    local_tz = datetime.now().astimezone().tzinfo
    return local_tz if local_tz is not None else timezone.utc


def wall_clock(tz_name: str) -> Callable[[], datetime]:
    """Return a clock yielding the current time in the rate window's zone.

    The zone is resolved once; DST transitions are still honoured by ZoneInfo.
    """
    tz = resolve_timezone(tz_name)
    return lambda: datetime.now(tz)
