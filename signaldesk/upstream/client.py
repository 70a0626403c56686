"""Upstream signal source async client.

Handles all communication with the signal-generation service: signal
snapshots, live log, verified outcomes, trade history, backtest details and
symbol status.  One attempt per call; failures are translated into the
domain error taxonomy and transport details never leave this module.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from signaldesk.config import Config
from signaldesk.errors import ResourceInitializing, UpstreamUnavailable
from signaldesk.models import (
    CurrentSignal,
    HistoricalTradeRecord,
    LivePredictionRecord,
    SignalPoint,
)
from signaldesk.upstream import schemas

logger = logging.getLogger("signaldesk.upstream")


class SignalSourceClient:
    """Async client wrapping the upstream signal source REST API."""

    def __init__(self, config: Config) -> None:
        self._base_url = config.signal_source_url.rstrip("/")
        self._timeout = config.upstream_timeout_seconds
        self._headers = {"Accept": "application/json"}

    # ── Transport ────────────────────────────────────────────────────────

    async def _get_json(
        self,
        path: str,
        params: Optional[dict] = None,
        symbol: Optional[str] = None,
    ) -> Any:
        """GET *path* and decode the JSON body.

        A 404 on a symbol-scoped endpoint (``symbol`` given) means the symbol
        is still initializing upstream.
        """
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.get(
                    url,
                    headers=self._headers,
                    params=params,
                    timeout=self._timeout,
                )
        except httpx.HTTPError as exc:
            logger.warning(
                "Upstream GET %s failed for %s: %s", path, symbol or "-", type(exc).__name__,
            )
            raise UpstreamUnavailable("Signal source unavailable.") from exc

        if resp.status_code == 404 and symbol is not None:
            logger.info("Upstream has no data yet for %s", symbol)
            raise ResourceInitializing(f"{symbol} is still initializing.")
        if not resp.is_success:
            logger.warning(
                "Upstream GET %s returned %d for %s", path, resp.status_code, symbol or "-",
            )
            raise UpstreamUnavailable("Signal source unavailable.")

        try:
            return resp.json()
        except ValueError as exc:
            logger.warning("Upstream GET %s returned a non-JSON body for %s", path, symbol or "-")
            raise UpstreamUnavailable("Signal source returned an invalid response.") from exc

    async def _get_parsed(
        self,
        parser,
        path: str,
        params: Optional[dict] = None,
        symbol: Optional[str] = None,
    ) -> Any:
        payload = await self._get_json(path, params=params, symbol=symbol)
        try:
            return parser(payload)
        except UpstreamUnavailable as exc:
            logger.warning(
                "Upstream GET %s failed validation for %s: %s", path, symbol or "-", exc.message,
            )
            raise UpstreamUnavailable("Signal source returned an invalid response.") from exc

    # ── Endpoints ────────────────────────────────────────────────────────

    async def fetch_signal_points(self) -> list[SignalPoint]:
        """Current per-asset/per-timeframe signal snapshot."""
        return await self._get_parsed(schemas.parse_signal_points, "/api/signals")

    async def fetch_live_log(self) -> list[CurrentSignal]:
        """Live prediction log, newest first."""
        return await self._get_parsed(schemas.parse_live_log, "/api/livelog")

    async def fetch_outcomes(self) -> list[LivePredictionRecord]:
        """Verified live outcomes for every symbol."""
        return await self._get_parsed(schemas.parse_outcomes, "/api/outcomes")

    async def fetch_history(self, symbol: str) -> list[HistoricalTradeRecord]:
        return await self._get_parsed(
            schemas.parse_history, f"/api/history/{quote(symbol, safe='')}", symbol=symbol,
        )

    async def fetch_backtest(self, symbol: str) -> schemas.BacktestDetails:
        return await self._get_parsed(
            schemas.parse_backtest, "/api/details", params={"symbol": symbol}, symbol=symbol,
        )

    async def fetch_symbol_status(self, symbol: str) -> dict:
        return await self._get_parsed(
            schemas.parse_symbol_status, f"/api/status/{quote(symbol, safe='')}", symbol=symbol,
        )
