"""Signal matrix — reshape flat signal points into an asset × timeframe grid."""

from datetime import datetime
from typing import Optional, Sequence

from signaldesk.config import DEFAULT_TIMEFRAMES
from signaldesk.models import SignalPoint

WAIT = 0


def build_grid(
    points: Sequence[SignalPoint],
    timeframes: Sequence[str] = DEFAULT_TIMEFRAMES,
) -> dict[str, dict[str, int]]:
    """Build a dense grid of signal values.

    Assets are the distinct assets in *points*, sorted.  Each row has one
    cell per entry of *timeframes* (in that order); the first matching point
    in input order wins and missing cells are ``WAIT`` (0).  Points on a
    timeframe outside *timeframes* are ignored.
    """
    index: dict[tuple[str, str], int] = {}
    for p in points:
        index.setdefault((p.asset, p.timeframe), p.signal_value)

    assets = sorted({p.asset for p in points})
    return {
        asset: {tf: index.get((asset, tf), WAIT) for tf in timeframes}
        for asset in assets
    }


def latest_update(
    points: Sequence[SignalPoint],
    timeframes: Sequence[str] = DEFAULT_TIMEFRAMES,
) -> Optional[datetime]:
    """Most recent ``last_updated_at`` among the points that fill a grid cell."""
    allowed = set(timeframes)
    contributing: dict[tuple[str, str], datetime] = {}
    for p in points:
        if p.timeframe in allowed:
            contributing.setdefault((p.asset, p.timeframe), p.last_updated_at)
    return max(contributing.values()) if contributing else None
