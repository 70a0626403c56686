"""SignalDesk — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

from signaldesk.errors import ValidationError


_REQUIRED_VARS = [
    "JWT_SECRET",
    "SIGNAL_SOURCE_URL",
]

DEFAULT_TIMEFRAMES = ("15m", "30m", "60m", "240m", "1d")
DEFAULT_ASSETS = ("BTC", "XRP", "SOL", "DOGE")

_SYMBOL_RE = re.compile(r"[A-Z0-9]+")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    jwt_secret: str
    signal_source_url: str
    db_path: str = "data/signaldesk.db"
    log_level: str = "INFO"
    http_port: int = 3000
    upstream_timeout_seconds: float = 10.0
    timeframes: tuple[str, ...] = DEFAULT_TIMEFRAMES
    assets: tuple[str, ...] = DEFAULT_ASSETS
    quote_currency: str = "USDT"
    recent_window: int = 30
    token_ttl_seconds: int = 3600

    def symbol_for(self, asset: str) -> str:
        """Return the upstream symbol for *asset*, e.g. ``"btc"`` → ``"BTCUSDT"``.

        Raises ``ValidationError`` unless the asset is plain alphanumeric.
        """
        symbol = asset.strip().upper()
        if not _SYMBOL_RE.fullmatch(symbol):
            raise ValidationError(f"Unknown asset: {asset!r}")
        if symbol.endswith(self.quote_currency):
            return symbol
        return f"{symbol}{self.quote_currency}"


def _split_list(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if not raw:
        return default
    items = tuple(p.strip() for p in raw.split(",") if p.strip())
    return items or default


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    return Config(
        jwt_secret=os.environ["JWT_SECRET"],
        signal_source_url=os.environ["SIGNAL_SOURCE_URL"].rstrip("/"),
        db_path=os.environ.get("DB_PATH", "data/signaldesk.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        http_port=int(os.environ.get("HTTP_PORT", "3000")),
        upstream_timeout_seconds=float(
            os.environ.get("UPSTREAM_TIMEOUT_SECONDS", "10.0")
        ),
        timeframes=_split_list(os.environ.get("SIGNAL_TIMEFRAMES"), DEFAULT_TIMEFRAMES),
        assets=tuple(
            a.upper() for a in _split_list(os.environ.get("SIGNAL_ASSETS"), DEFAULT_ASSETS)
        ),
        quote_currency=os.environ.get("QUOTE_CURRENCY", "USDT").upper(),
        recent_window=int(os.environ.get("RECENT_WINDOW", "30")),
        token_ttl_seconds=int(os.environ.get("TOKEN_TTL_SECONDS", "3600")),
    )
