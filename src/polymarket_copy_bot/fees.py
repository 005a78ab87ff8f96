from __future__ import annotations

import re

FEE_15M_BPS = 1000
FEE_DEFAULT_BPS = 0

_WINDOW_RE = re.compile(
    r"(\d{1,2}):(\d{2})\s*(AM|PM)\s*-\s*(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE
)
_MINUTES_PER_DAY = 24 * 60


def _to_minutes(hour: str, minute: str, meridiem: str) -> int:
    h = int(hour) % 12
    if meridiem.upper() == "PM":
        h += 12
    return h * 60 + int(minute)


def fee_rate_bps_for_title(title: str | None) -> int:
    """Fee tier implied by the market title.

    Short-window crypto markets are titled like
    ``"Bitcoin Up or Down - October 19, 10:00PM-10:15PM ET"`` and carry a taker
    fee; everything else trades at zero.
    """
    if not title:
        return FEE_DEFAULT_BPS

    match = _WINDOW_RE.search(title)
    if match is None:
        return FEE_DEFAULT_BPS

    start = _to_minutes(match.group(1), match.group(2), match.group(3))
    end = _to_minutes(match.group(4), match.group(5), match.group(6))
    span = end - start if end >= start else end + _MINUTES_PER_DAY - start
    return FEE_15M_BPS if span == 15 else FEE_DEFAULT_BPS
