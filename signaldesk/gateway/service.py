"""SignalGateway — entitlement-checked proxy to the upstream signal source.

Each call is an independent unit of work: the caller identity is passed in
per request and nothing about it is retained.  Premium operations check
entitlement before any upstream call is made.
"""

import asyncio
import logging
import math
from typing import Any, Optional, Sequence

from signaldesk.config import Config
from signaldesk.errors import (
    AuthRequired,
    Err,
    Ok,
    SubscriptionRequired,
    ValidationError,
    capture,
)
from signaldesk.gateway.entitlement import RouteClass, authorize
from signaldesk.models import CallerIdentity, CurrentSignal, LivePredictionRecord
from signaldesk.performance.stats import (
    accumulate,
    apply_fee,
    build_curve,
    cumulative_series,
    curve_bounds,
    summarize,
)
from signaldesk.signals.matrix import build_grid, latest_update
from signaldesk.upstream.client import SignalSourceClient

logger = logging.getLogger("signaldesk.gateway")

_LOCK_KINDS = {AuthRequired.kind, SubscriptionRequired.kind}


def parse_fee(raw: Any) -> float:
    """Validate a user-supplied per-trade fee (percent).

    Negative and zero fees are accepted; non-numeric or non-finite values
    raise ``ValidationError``.
    """
    if raw is None or isinstance(raw, bool):
        raise ValidationError("fee must be a number")
    try:
        fee = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError("fee must be a number") from exc
    if not math.isfinite(fee):
        raise ValidationError("fee must be a finite number")
    return fee


class SignalGateway:
    """Routes caller requests to the signal source and derives views.

    Args:
        client: ``SignalSourceClient`` (or duck-type for tests).
        config: Global ``Config``.
    """

    def __init__(self, client: SignalSourceClient, config: Config) -> None:
        self._client = client
        self._config = config

    # ── Premium ──────────────────────────────────────────────────────────

    async def signal_grid(self, identity: CallerIdentity) -> dict:
        """Asset × timeframe grid of current signals."""
        authorize(identity, RouteClass.PREMIUM)
        points = await self._client.fetch_signal_points()
        timeframes = self._config.timeframes
        grid = build_grid(points, timeframes)
        return {
            "assets": list(grid.keys()),
            "timeframes": list(timeframes),
            "grid": grid,
            "updated_at": latest_update(points, timeframes),
        }

    async def current_signals(self, identity: CallerIdentity) -> dict:
        """Latest live-log entry for every configured asset."""
        authorize(identity, RouteClass.PREMIUM)
        log = await self._client.fetch_live_log()
        results: dict[str, dict] = {}
        for asset in self._config.assets:
            latest = _latest_for(log, self._config.symbol_for(asset))
            if latest is None:
                results[asset] = {"pred_dir": 0, "error": "No Signal"}
            else:
                results[asset] = _signal_view(latest)
        return results

    async def current_signal(self, identity: CallerIdentity, asset: str) -> dict:
        """Latest live-log entry for one asset; ``{"pred_dir": 0}`` if none."""
        authorize(identity, RouteClass.PREMIUM)
        log = await self._client.fetch_live_log()
        latest = _latest_for(log, self._config.symbol_for(asset))
        if latest is None:
            return {"pred_dir": 0}
        return _signal_view(latest)

    # ── Public ───────────────────────────────────────────────────────────

    async def history(self, asset: str) -> dict:
        """Accuracy and cumulative PnL over the asset's resolved signals."""
        symbol = self._config.symbol_for(asset)
        records = await self._client.fetch_history(symbol)
        return {"asset": symbol, **accumulate(records)}

    async def live_performance(self, asset: str) -> dict:
        records = await self._asset_outcomes(asset)
        return _performance_view(records)

    async def recent_performance(self, asset: str) -> dict:
        records = await self._asset_outcomes(asset)
        return _performance_view(self._recent(records))

    async def backtest(self, asset: str) -> dict:
        details = await self._client.fetch_backtest(self._config.symbol_for(asset))
        return _backtest_view(details.accuracy_percent, details.logs)

    async def symbol_status(self, asset: str) -> dict:
        return await self._client.fetch_symbol_status(self._config.symbol_for(asset))

    async def fee_adjusted(self, asset: str, raw_fee: Any) -> dict:
        """Fee-adjusted PnL of the asset's live history."""
        fee = parse_fee(raw_fee)
        records = await self._asset_outcomes(asset)
        trade_count = sum(1 for r in records if r.predicted_direction != 0)
        return {
            "asset": self._config.symbol_for(asset),
            "fee_percent": fee,
            "trade_count": trade_count,
            "pnl_percent": apply_fee(records, 0.0),
            "fee_adjusted_pnl_percent": apply_fee(records, fee),
        }

    async def asset_detail(self, identity: CallerIdentity, asset: str) -> dict:
        """Best-effort aggregate for one asset page.

        Backtest, outcomes and current signal are fetched concurrently; a
        failed section becomes ``None`` without affecting the others.
        """
        symbol = self._config.symbol_for(asset)
        backtest_res, outcomes_res, current_res = await asyncio.gather(
            capture(self.backtest(asset)),
            capture(self._asset_outcomes(asset)),
            capture(self.current_signal(identity, asset)),
        )

        backtest_stats = None
        if isinstance(backtest_res, Ok):
            backtest_stats = backtest_res.value
        else:
            logger.info("Backtest unavailable for %s: %s", symbol, backtest_res.kind)

        recent_stats = None
        live_history: list[dict] = []
        if isinstance(outcomes_res, Ok):
            records = outcomes_res.value
            recent_stats = _performance_view(self._recent(records))
            live_history = [
                _record_view(r)
                for r in sorted(records, key=lambda r: r.time, reverse=True)
            ]
        else:
            logger.info("Outcomes unavailable for %s: %s", symbol, outcomes_res.kind)

        current_signal, locked, lock_reason = _current_section(symbol, current_res)

        return {
            "asset": symbol,
            "backtest_stats": backtest_stats,
            "recent_validation_stats": recent_stats,
            "live_history": live_history,
            "current_signal": current_signal,
            "locked": locked,
            "lock_reason": lock_reason,
        }

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _asset_outcomes(self, asset: str) -> list[LivePredictionRecord]:
        symbol = self._config.symbol_for(asset)
        outcomes = await self._client.fetch_outcomes()
        return [r for r in outcomes if r.symbol == symbol]

    def _recent(self, records: Sequence[LivePredictionRecord]) -> list[LivePredictionRecord]:
        ordered = sorted(records, key=lambda r: r.time)
        return ordered[-self._config.recent_window:] if self._config.recent_window > 0 else ordered


def _current_section(symbol: str, result: Any) -> tuple[Optional[dict], bool, Optional[str]]:
    """Map the current-signal sub-fetch to ``(signal, locked, lock_reason)``."""
    if isinstance(result, Ok):
        return result.value, False, None
    if isinstance(result, Err) and result.kind in _LOCK_KINDS:
        return None, True, result.kind
    logger.warning("Current signal omitted for %s: %s", symbol, result.kind)
    return None, False, None


def _latest_for(log: Sequence[CurrentSignal], symbol: str) -> Optional[CurrentSignal]:
    matches = [entry for entry in log if entry.symbol == symbol]
    if not matches:
        return None
    return max(matches, key=lambda entry: entry.time)


def _signal_view(entry: CurrentSignal) -> dict:
    return {
        "time": entry.time,
        "entry_price": entry.entry_price,
        "pred_dir": entry.pred_dir,
    }


def _record_view(record: LivePredictionRecord) -> dict:
    return {
        "time": record.time,
        "pred_dir": record.predicted_direction,
        "entry_price": record.entry_price,
        "exit_price": record.exit_price,
        "pnl_percent": record.pnl_percent,
    }


def _performance_view(records: Sequence[LivePredictionRecord]) -> dict:
    """Stats (``None`` when no non-flat record), equity curve and rows."""
    curve = build_curve(cumulative_series(records))
    return {
        "stats": summarize(records),
        "equity_curve": curve,
        "value_range": curve_bounds(curve),
        "results": [_record_view(r) for r in records],
    }


def _backtest_view(
    upstream_accuracy: Optional[float],
    logs: Sequence[LivePredictionRecord],
) -> dict:
    stats = summarize(logs)
    curve = build_curve(cumulative_series(logs))
    accuracy = upstream_accuracy
    if accuracy is None:
        accuracy = stats["accuracy_percent"] if stats else 0.0
    return {
        "accuracy_percent": accuracy,
        "cumulative_pnl_percent": stats["cumulative_pnl_percent"] if stats else 0.0,
        "win_count": stats["win_count"] if stats else 0,
        "total_count": stats["total_count"] if stats else 0,
        "equity_curve": curve,
        "value_range": curve_bounds(curve),
    }
