"""SignalDesk — application entry point.

Boots the FastAPI server and provides the CLI entry point.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from signaldesk.api.routers import router
from signaldesk.errors import SignalDeskError

app = FastAPI(title="SignalDesk API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("signaldesk")


@app.exception_handler(SignalDeskError)
async def signaldesk_error_handler(request: Request, exc: SignalDeskError):
    """Render a domain error as ``{"error", "kind"}`` with its status code."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "kind": exc.kind},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments, wire collaborators and serve the API."""
    import argparse

    import uvicorn

    from signaldesk.api.routers import configure_routers
    from signaldesk.auth.resolver import CredentialResolver
    from signaldesk.auth.tokens import TokenVerifier
    from signaldesk.config import load_config
    from signaldesk.gateway.service import SignalGateway
    from signaldesk.repos.account_repo import AccountRepo
    from signaldesk.repos.db import init_db
    from signaldesk.upstream.client import SignalSourceClient

    parser = argparse.ArgumentParser(description="SignalDesk API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=None, help="Override HTTP_PORT")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env_file)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    init_db(config.db_path)

    resolver = CredentialResolver(
        accounts=AccountRepo(config.db_path),
        verifier=TokenVerifier(config.jwt_secret, config.token_ttl_seconds),
    )
    gateway = SignalGateway(client=SignalSourceClient(config), config=config)
    configure_routers(resolver=resolver, gateway=gateway)

    port = args.port or config.http_port
    logger.info(
        "Starting SignalDesk on port %d (upstream %s, %d asset(s)).",
        port, config.signal_source_url, len(config.assets),
    )
    uvicorn.run(app, host=args.host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    _run_cli()
