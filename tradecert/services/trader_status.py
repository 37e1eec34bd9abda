# tradecert/services/trader_status.py
"""Certification window bookkeeping for traders.

A trader's window opens on the first approved course and is capped at
``CERTIFICATION_YEARS`` from that first approval. Each further approval
extends an active window by ``RENEWAL_YEARS``; a lapsed window restarts
from the approval instant instead of its old end.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Dict

from dateutil.relativedelta import relativedelta
from loguru import logger

from tradecert.core.clock import to_local
from tradecert.core.config import settings
from tradecert.models.trader import Trader

SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

# Always reports the cap, not the real elapsed duration.
DURATION_DISPLAY: Dict[str, int] = {"years": 2, "months": 0, "days": 0}


def certification_cap(start: datetime) -> datetime:
    return to_local(start) + relativedelta(years=settings.CERTIFICATION_YEARS)


def remaining_time_display(end: datetime | None, now: datetime) -> Dict[str, int]:
    """Approximate years/months/days left until ``end``.

    Years are 365 days, months a twelfth of that, and the day component is
    the total day count modulo 30.
    """
    if end is None:
        return {"years": 0, "months": 0, "days": 0}
    seconds = (end - now).total_seconds()
    if seconds <= 0:
        return {"years": 0, "months": 0, "days": 0}
    return {
        "years": math.floor(seconds / SECONDS_PER_YEAR),
        "months": math.floor((seconds * 12 / SECONDS_PER_YEAR) % 12),
        "days": math.floor((seconds / SECONDS_PER_DAY) % 30),
    }


def recompute_certification_window(trader: Trader, now: datetime) -> Trader:
    """Applies one approved course to the trader's window. Mutates ``trader``."""
    now = to_local(now)
    previous_end = trader.end_date

    if trader.start_date is None:
        trader.start_date = now
        trader.end_date = now + relativedelta(years=settings.CERTIFICATION_YEARS)
    else:
        exact_start = to_local(trader.start_date)
        current_end = to_local(trader.end_date) if trader.end_date else exact_start

        if current_end < now:
            new_end = now + relativedelta(years=settings.RENEWAL_YEARS)
        else:
            new_end = current_end + relativedelta(years=settings.RENEWAL_YEARS)

        cap = certification_cap(exact_start)
        if new_end > cap:
            new_end = cap
        trader.end_date = new_end

    trader.remaining_time_display = remaining_time_display(to_local(trader.end_date), now)
    trader.duration_display = dict(DURATION_DISPLAY)

    logger.info(
        "trader {} window recomputed: start={} end {} -> {}",
        trader.id, trader.start_date, previous_end, trader.end_date,
    )
    return trader


def certification_status(trader: Trader, now: datetime) -> str:
    if trader.start_date is None or trader.end_date is None:
        return "inactive"
    return "active" if to_local(trader.end_date) >= to_local(now) else "expired"
