"""Performance accounting — pure functions for signal/trade record analysis.

Nothing here performs I/O or mutates its inputs.  Malformed numeric fields
are coerced to neutral values so a statistic is always produced, but records
are never dropped from count-based denominators because of them.
"""

import math
from dataclasses import asdict
from typing import Any, Optional, Sequence

from signaldesk.models import (
    HistoricalTradeRecord,
    LivePredictionRecord,
    normalize_direction,
)


def accumulate(records: Sequence[HistoricalTradeRecord]) -> dict:
    """Compute accuracy and cumulative PnL over historical trade records.

    ``PENDING`` records are excluded from accuracy but still contribute
    their PnL (0 when prices are missing).

    Returns:
        ``accuracy_percent``, ``cumulative_pnl_percent``, ``win_count``,
        ``loss_count``, ``total_count`` and ``enriched_records`` (each
        record as a dict with ``pnl_percent`` added).
    """
    wins = 0
    losses = 0
    cumulative = 0.0
    enriched: list[dict] = []

    for record in records:
        outcome = str(record.outcome or "").upper()
        if outcome == "WIN":
            wins += 1
        elif outcome == "LOSS":
            losses += 1

        pnl = _directional_pnl(
            record.entry_price, record.exit_price, normalize_direction(record.direction),
        )
        cumulative += pnl
        enriched.append({**asdict(record), "pnl_percent": pnl})

    decided = wins + losses
    accuracy = (wins / decided) * 100 if decided else 0.0

    return {
        "accuracy_percent": round(accuracy, 2),
        "cumulative_pnl_percent": round(cumulative, 2),
        "win_count": wins,
        "loss_count": losses,
        "total_count": len(enriched),
        "enriched_records": enriched,
    }


def summarize(records: Sequence[LivePredictionRecord]) -> Optional[dict]:
    """Win rate and cumulative PnL over non-flat live predictions.

    A win is any record with ``pnl_percent > 0``.  Returns ``None`` when no
    non-flat record exists (rendered as N/A by the presentation layer).
    """
    active = _non_flat(records)
    if not active:
        return None

    pnls = [_as_number(r.pnl_percent) or 0.0 for r in active]
    total = len(pnls)
    wins = sum(1 for p in pnls if p > 0)

    return {
        "accuracy_percent": round((wins / total) * 100, 1),
        "cumulative_pnl_percent": round(sum(pnls), 4),
        "win_count": wins,
        "total_count": total,
    }


def apply_fee(
    records: Sequence[LivePredictionRecord],
    fee_percent_per_trade: float,
) -> float:
    """Cumulative PnL of non-flat records minus a flat per-trade fee.

    The fee is a what-if parameter: fractional, zero and negative values
    are all accepted as-is.
    """
    active = _non_flat(records)
    gross = sum(_as_number(r.pnl_percent) or 0.0 for r in active)
    return round(gross - len(active) * fee_percent_per_trade, 2)


def build_curve(points: Sequence[dict]) -> list[dict]:
    """Order equity points ascending by ``time``.

    Stable, so equal timestamps keep their input order.  Fewer than two
    points cannot form a curve and yield ``[]``.
    """
    if len(points) < 2:
        return []
    return [dict(p) for p in sorted(points, key=lambda p: p["time"])]


def curve_bounds(points: Sequence[dict]) -> tuple[float, float]:
    """Return ``(min, max)`` of curve values, clamped to include 0."""
    values = [_as_number(p.get("value")) or 0.0 for p in points]
    return min([0.0, *values]), max([0.0, *values])


def cumulative_series(records: Sequence[LivePredictionRecord]) -> list[dict]:
    """Running sum of non-flat ``pnl_percent`` in time order.

    Returns ``[{"time": ..., "value": ...}]`` suitable for ``build_curve``.
    """
    ordered = sorted(_non_flat(records), key=lambda r: r.time)
    running = 0.0
    series: list[dict] = []
    for r in ordered:
        running += _as_number(r.pnl_percent) or 0.0
        series.append({"time": r.time, "value": round(running, 4)})
    return series


def directional_pnl_percent(entry: Any, exit_: Any, direction: Any) -> Optional[float]:
    """Percent PnL for one trade, or ``None`` while the exit is unknown."""
    if _as_number(exit_) is None:
        return None
    return _directional_pnl(entry, exit_, normalize_direction(direction))


# ── Helpers ──────────────────────────────────────────────────────────────


def _directional_pnl(entry: Any, exit_: Any, direction: int) -> float:
    """Long: (exit − entry) / entry × 100.  Short: the negation.  Else 0."""
    entry_v = _as_number(entry)
    exit_v = _as_number(exit_)
    if entry_v is None or exit_v is None or entry_v == 0:
        return 0.0
    if direction == 1:
        return (exit_v - entry_v) / entry_v * 100
    if direction == -1:
        return (entry_v - exit_v) / entry_v * 100
    return 0.0


def _non_flat(records: Sequence[LivePredictionRecord]) -> list[LivePredictionRecord]:
    return [r for r in records if normalize_direction(r.predicted_direction) != 0]


def _as_number(value: Any) -> Optional[float]:
    """Coerce *value* to a finite float, or ``None`` when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
