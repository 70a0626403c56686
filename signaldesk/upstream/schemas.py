"""Strict payload validation for the upstream signal source.

Every parser either returns typed records or raises ``UpstreamUnavailable``;
malformed payloads never leak ``None`` into the accounting code.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from signaldesk.errors import UpstreamUnavailable
from signaldesk.models import (
    CurrentSignal,
    HistoricalTradeRecord,
    LivePredictionRecord,
    SignalPoint,
    normalize_direction,
)
from signaldesk.performance.stats import directional_pnl_percent

_SIGNAL_LABELS = {"BUY": 1, "WAIT": 0, "SELL": -1}
_OUTCOMES = {"WIN", "LOSS", "PENDING"}


@dataclass(frozen=True)
class BacktestDetails:
    """Backtest summary for one symbol."""

    accuracy_percent: Optional[float]
    logs: list[LivePredictionRecord] = field(default_factory=list)


# ── Public parsers ───────────────────────────────────────────────────────


def parse_signal_points(payload: Any) -> list[SignalPoint]:
    points: list[SignalPoint] = []
    for i, item in enumerate(_require_list(payload, "signals")):
        where = f"signals[{i}]"
        row = _require_dict(item, where)
        points.append(
            SignalPoint(
                asset=_require_str(row, "asset", where).upper(),
                timeframe=_require_str(row, "timeframe", where),
                signal_value=_signal_value(_require_key(row, "signal", where), where),
                generated_at=parse_timestamp(
                    _require_key(row, "generated_at", where), f"{where}.generated_at",
                ),
                last_updated_at=parse_timestamp(
                    _require_key(row, "last_updated_at", where), f"{where}.last_updated_at",
                ),
            )
        )
    return points


def parse_live_log(payload: Any) -> list[CurrentSignal]:
    entries: list[CurrentSignal] = []
    for i, item in enumerate(_require_list(payload, "livelog")):
        where = f"livelog[{i}]"
        row = _require_dict(item, where)
        entries.append(
            CurrentSignal(
                symbol=_require_str(row, "symbol", where).upper(),
                time=parse_timestamp(_require_key(row, "timestamp", where), f"{where}.timestamp"),
                entry_price=_number(row.get("close_price"), f"{where}.close_price"),
                pred_dir=normalize_direction(row.get("prediction")),
            )
        )
    return entries


def parse_outcomes(payload: Any) -> list[LivePredictionRecord]:
    """Verified live outcomes; ``pnl_percent`` derived from entry/exit."""
    records: list[LivePredictionRecord] = []
    for i, item in enumerate(_require_list(payload, "outcomes")):
        where = f"outcomes[{i}]"
        row = _require_dict(item, where)
        direction = normalize_direction(row.get("prediction"))
        entry = _number(row.get("entry_price"), f"{where}.entry_price")
        exit_ = _number(row.get("exit_price"), f"{where}.exit_price")
        records.append(
            LivePredictionRecord(
                time=parse_timestamp(_require_key(row, "time_entry", where), f"{where}.time_entry"),
                predicted_direction=direction,
                entry_price=entry,
                exit_price=exit_,
                pnl_percent=directional_pnl_percent(entry, exit_, direction),
                symbol=_require_str(row, "symbol", where).upper(),
            )
        )
    return records


def parse_history(payload: Any) -> list[HistoricalTradeRecord]:
    records: list[HistoricalTradeRecord] = []
    for i, item in enumerate(_require_list(payload, "history")):
        where = f"history[{i}]"
        row = _require_dict(item, where)
        records.append(
            HistoricalTradeRecord(
                time=parse_timestamp(_require_key(row, "time", where), f"{where}.time"),
                asset=_require_str(row, "asset", where).upper(),
                timeframe=str(row.get("timeframe") or ""),
                direction=_require_key(row, "direction", where),
                entry_price=_number(row.get("entry_price"), f"{where}.entry_price"),
                exit_price=_number(row.get("exit_price"), f"{where}.exit_price"),
                outcome=_outcome(row.get("outcome"), where),
            )
        )
    return records


def parse_backtest(payload: Any) -> BacktestDetails:
    """Backtest ``{accuracy, logs}``; log PnL is ``pnl / rnd_t_0`` in percent."""
    body = _require_dict(payload, "details")
    logs: list[LivePredictionRecord] = []
    for i, item in enumerate(_require_list(body.get("logs"), "details.logs")):
        where = f"details.logs[{i}]"
        row = _require_dict(item, where)
        price = _number(row.get("rnd_t_0"), f"{where}.rnd_t_0")
        pnl_abs = _number(row.get("pnl"), f"{where}.pnl")
        pnl_pct = 0.0
        if price and pnl_abs is not None:
            pnl_pct = pnl_abs / price * 100
        logs.append(
            LivePredictionRecord(
                time=parse_timestamp(_require_key(row, "time_t", where), f"{where}.time_t"),
                predicted_direction=normalize_direction(row.get("prediction")),
                entry_price=price,
                exit_price=None,
                pnl_percent=pnl_pct,
            )
        )
    return BacktestDetails(accuracy_percent=_loose_number(body.get("accuracy")), logs=logs)


def parse_symbol_status(payload: Any) -> dict:
    return dict(_require_dict(payload, "status"))


def parse_timestamp(value: Any, where: str) -> datetime:
    """ISO-8601 string or epoch seconds → timezone-aware UTC ``datetime``."""
    if isinstance(value, bool):
        raise UpstreamUnavailable(f"Malformed timestamp at {where}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise UpstreamUnavailable(f"Malformed timestamp at {where}") from exc
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise UpstreamUnavailable(f"Malformed timestamp at {where}") from exc
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    raise UpstreamUnavailable(f"Malformed timestamp at {where}")


# ── Helpers ──────────────────────────────────────────────────────────────


def _require_list(value: Any, where: str) -> list:
    if not isinstance(value, list):
        raise UpstreamUnavailable(f"Expected array at {where}")
    return value


def _require_dict(value: Any, where: str) -> dict:
    if not isinstance(value, dict):
        raise UpstreamUnavailable(f"Expected object at {where}")
    return value


def _require_key(row: dict, key: str, where: str) -> Any:
    if row.get(key) is None:
        raise UpstreamUnavailable(f"Missing '{key}' at {where}")
    return row[key]


def _require_str(row: dict, key: str, where: str) -> str:
    value = _require_key(row, key, where)
    if not isinstance(value, str) or not value.strip():
        raise UpstreamUnavailable(f"Expected string '{key}' at {where}")
    return value.strip()


def _number(value: Any, where: str) -> Optional[float]:
    """Nullable numeric field: numbers and numeric strings only."""
    if value is None:
        return None
    number = _loose_number(value)
    if number is None:
        raise UpstreamUnavailable(f"Expected number at {where}")
    return number


def _loose_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _signal_value(value: Any, where: str) -> int:
    if isinstance(value, str):
        label = value.strip().upper()
        if label in _SIGNAL_LABELS:
            return _SIGNAL_LABELS[label]
    number = _loose_number(value)
    if number in (-1.0, 0.0, 1.0):
        return int(number)
    raise UpstreamUnavailable(f"Signal value must be -1, 0 or 1 at {where}")


def _outcome(value: Any, where: str) -> str:
    if value is None:
        return "PENDING"
    if value is True:
        return "WIN"
    if value is False:
        return "LOSS"
    label = str(value).strip().upper()
    if label not in _OUTCOMES:
        raise UpstreamUnavailable(f"Unknown outcome '{value}' at {where}")
    return label
