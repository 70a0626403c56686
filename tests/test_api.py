"""Tests for the HTTP surface — credentials, entitlement and error rendering."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from signaldesk.api.routers import configure_routers
from signaldesk.auth.resolver import CredentialResolver
from signaldesk.auth.tokens import TokenVerifier
from signaldesk.config import Config
from signaldesk.errors import ResourceInitializing, UpstreamUnavailable
from signaldesk.gateway.service import SignalGateway
from signaldesk.main import app
from signaldesk.models import CurrentSignal, LivePredictionRecord, SignalPoint
from signaldesk.repos.account_repo import AccountRepo
from signaldesk.repos.db import init_db
from signaldesk.upstream.schemas import BacktestDetails

client = TestClient(app)

SECRET = "api-test-secret-0123456789abcdef0123"
T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_upstream(**failures):
    upstream = AsyncMock()
    upstream.fetch_signal_points.return_value = [SignalPoint("BTC", "60m", 1, T0, T0)]
    upstream.fetch_live_log.return_value = [CurrentSignal("BTCUSDT", T0, 84000.0, 1)]
    upstream.fetch_outcomes.return_value = [
        LivePredictionRecord(T0, 1, 100.0, 101.0, 1.0, symbol="BTCUSDT"),
        LivePredictionRecord(T0.replace(hour=13), -1, 101.0, 102.0, -0.99, symbol="BTCUSDT"),
    ]
    upstream.fetch_backtest.return_value = BacktestDetails(accuracy_percent=60.0, logs=[])
    upstream.fetch_history.return_value = []
    upstream.fetch_symbol_status.return_value = {"symbol": "BTCUSDT", "ready": True}
    for name, exc in failures.items():
        getattr(upstream, name).side_effect = exc
    return upstream


@pytest.fixture
def accounts(tmp_path):
    db_path = str(tmp_path / "api.db")
    init_db(db_path)
    return AccountRepo(db_path)


@pytest.fixture
def wire(accounts):
    """Configure routers with a real resolver and a mocked upstream."""
    def _wire(**failures):
        upstream = _make_upstream(**failures)
        config = Config(jwt_secret=SECRET, signal_source_url="http://signals.test")
        configure_routers(
            resolver=CredentialResolver(accounts, TokenVerifier(SECRET)),
            gateway=SignalGateway(upstream, config),
        )
        return upstream
    yield _wire
    configure_routers()


def _bearer(account_id, ttl=3600):
    return {"Authorization": f"Bearer {TokenVerifier(SECRET).issue(account_id, ttl)}"}


# ── Tests ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self):
        assert client.get("/health").json() == {"status": "ok"}


class TestPremiumRoutes:
    def test_no_credential_is_401(self, wire):
        wire()
        resp = client.get("/api/signals/grid")
        assert resp.status_code == 401
        assert resp.json()["kind"] == "auth_required"

    def test_expired_token_is_401(self, wire, accounts):
        wire()
        account_id = accounts.insert_account("x@example.com", subscription_status="active")
        resp = client.get("/api/signals/BTC/current", headers=_bearer(account_id, ttl=-5))
        assert resp.status_code == 401
        assert resp.json()["kind"] == "auth_required"

    def test_unsubscribed_is_403(self, wire, accounts):
        wire()
        accounts.insert_account("y@example.com", api_key="key-y", subscription_status="canceled")
        resp = client.get("/api/signals/all/current", headers={"x-api-key": "key-y"})
        assert resp.status_code == 403
        assert resp.json()["kind"] == "subscription_required"

    def test_trialing_is_forwarded(self, wire, accounts):
        upstream = wire()
        account_id = accounts.insert_account("z@example.com", subscription_status="trialing")
        resp = client.get("/api/signals/grid", headers=_bearer(account_id))
        assert resp.status_code == 200
        data = resp.json()
        assert data["assets"] == ["BTC"]
        assert data["grid"]["BTC"]["60m"] == 1
        assert data["grid"]["BTC"]["1d"] == 0
        upstream.fetch_signal_points.assert_awaited_once()

    def test_api_key_beats_bearer(self, wire, accounts):
        wire()
        subscribed = accounts.insert_account("s@example.com", subscription_status="active")
        accounts.insert_account("u@example.com", api_key="key-u", subscription_status="inactive")
        headers = {"x-api-key": "key-u", **_bearer(subscribed)}
        assert client.get("/api/signals/BTC/current", headers=headers).status_code == 403

    def test_upstream_down_is_502(self, wire, accounts):
        wire(fetch_live_log=UpstreamUnavailable("Signal source unavailable."))
        accounts.insert_account("a@example.com", api_key="key-a", subscription_status="active")
        resp = client.get("/api/signals/BTC/current", headers={"x-api-key": "key-a"})
        assert resp.status_code == 502
        assert resp.json() == {"error": "Signal source unavailable.", "kind": "upstream_unavailable"}


class TestPublicRoutes:
    def test_live_without_credentials(self, wire):
        wire()
        resp = client.get("/api/signals/btc/live")
        assert resp.status_code == 200
        assert resp.json()["stats"]["total_count"] == 2

    def test_history_initializing(self, wire):
        wire(fetch_history=ResourceInitializing("DOGEUSDT is still initializing."))
        resp = client.get("/api/signals/doge/history")
        assert resp.status_code == 404
        assert resp.json()["kind"] == "initializing"

    def test_fee_validation(self, wire):
        wire()
        resp = client.get("/api/signals/btc/fee-adjusted", params={"fee": "lots"})
        assert resp.status_code == 422
        assert resp.json()["kind"] == "validation_error"

    def test_fee_adjusted(self, wire):
        wire()
        resp = client.get("/api/signals/btc/fee-adjusted", params={"fee": "0.05"})
        assert resp.status_code == 200
        assert resp.json()["fee_adjusted_pnl_percent"] == pytest.approx(-0.09)

    def test_status_passthrough(self, wire):
        wire()
        assert client.get("/api/signals/btc/status").json() == {"symbol": "BTCUSDT", "ready": True}

    def test_encoded_query_in_asset_is_rejected(self, wire):
        upstream = wire()
        resp = client.get("/api/signals/btc%3Fdebug=1%23/status")
        assert resp.status_code == 422
        assert resp.json()["kind"] == "validation_error"
        upstream.fetch_symbol_status.assert_not_called()

    def test_encoded_query_in_asset_detail_is_rejected(self, wire):
        upstream = wire()
        assert client.get("/api/assets/btc%23x").status_code == 422
        upstream.fetch_backtest.assert_not_called()


class TestAssetDetail:
    def test_backtest_failure_is_still_200(self, wire, accounts):
        wire(fetch_backtest=UpstreamUnavailable("down"))
        accounts.insert_account("d@example.com", api_key="key-d", subscription_status="active")
        resp = client.get("/api/assets/btc", headers={"x-api-key": "key-d"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["backtest_stats"] is None
        assert data["recent_validation_stats"]["stats"]["total_count"] == 2
        assert data["current_signal"]["pred_dir"] == 1

    def test_anonymous_sees_locked_current_signal(self, wire):
        wire()
        data = client.get("/api/assets/btc").json()
        assert data["locked"] is True
        assert data["lock_reason"] == "auth_required"
        assert data["backtest_stats"]["accuracy_percent"] == 60.0


class TestAuthMe:
    def test_anonymous(self, wire):
        wire()
        assert client.get("/auth/me").status_code == 401

    def test_registered(self, wire, accounts):
        wire()
        account_id = accounts.insert_account("m@example.com", subscription_status="inactive")
        data = client.get("/auth/me", headers=_bearer(account_id)).json()
        assert data == {
            "id": account_id,
            "tier": "registered",
            "access": "authenticated_unsubscribed",
        }


class TestUnconfigured:
    def test_no_gateway_is_502(self):
        configure_routers()
        assert client.get("/api/signals/btc/live").status_code == 502
