"""Refresh timing decisions. Pure functions of timestamps and intervals."""

from datetime import datetime, timedelta


def is_stale(last_proactive_refresh: datetime | None, now: datetime, interval: timedelta) -> bool:
    """True if keys were never fetched or were fetched more than ``interval`` ago."""
    if last_proactive_refresh is None:
        return True
    return now - last_proactive_refresh > interval


def may_retry(last_reactive_refresh: datetime | None, now: datetime, cooldown: timedelta) -> bool:
    """True if no reactive refresh happened yet or the last one is older than ``cooldown``."""
    if last_reactive_refresh is None:
        return True
    return now - last_reactive_refresh > cooldown
