"""
Trading-signal heuristics shown on the dashboard.

Rules of thumb behind them:
- explosion index below 200 is the risk line; risk-takers short from there
  and take profit on entry-period day 1;
- risk-averse traders short from exit-period day 1 and cover when the
  explosion index turns from negative to positive;
- an OTC index of 1000 is where pump capital stops being efficient;
- every explosion index flip to positive and every new entry period is a
  buy-the-dip / add-to-position moment.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

EXPLOSION_RISK_THRESHOLD = 200
OTC_EFFICIENCY_LINE = 1000


def _explosion_turned_positive(explosion: Optional[int], previous_explosion: Optional[int]) -> bool:
    return (
        previous_explosion is not None
        and explosion is not None
        and previous_explosion < 0
        and explosion >= 0
    )


def is_entry_candidate(metric: Mapping[str, Any], previous_explosion: Optional[int] = None) -> bool:
    """Entry / add-to-position opportunity."""
    if not metric:
        return False
    # every entry-period day counts: day 1 is the entry itself, later days are
    # swing trades below the OTC line and last adds above it
    if metric.get("entry_exit_type") == "entry":
        return True
    return _explosion_turned_positive(metric.get("explosion_index"), previous_explosion)


def is_exit_short_candidate(metric: Mapping[str, Any], previous_explosion: Optional[int] = None) -> bool:
    """Take-profit or short opportunity."""
    if not metric:
        return False
    kind = metric.get("entry_exit_type")
    day = metric.get("entry_exit_day") or 0
    explosion = metric.get("explosion_index")
    otc = metric.get("otc_index")

    if kind == "exit" and day == 1:
        return True
    if explosion is not None and explosion < EXPLOSION_RISK_THRESHOLD and not (kind == "entry" and day <= 3):
        return True
    if kind == "entry" and day > 1 and otc is not None and otc >= OTC_EFFICIENCY_LINE:
        return True
    if kind == "exit" and day > 1 and _explosion_turned_positive(explosion, previous_explosion):
        return True
    return False


def classify(metric: Mapping[str, Any], previous_explosion: Optional[int] = None) -> list[str]:
    signals = []
    if is_entry_candidate(metric, previous_explosion):
        signals.append("entry")
    if is_exit_short_candidate(metric, previous_explosion):
        signals.append("exit_short")
    if metric.get("explosion_index") is not None and metric["explosion_index"] < EXPLOSION_RISK_THRESHOLD:
        signals.append("explosion_risk")
    return signals
