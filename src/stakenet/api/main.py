from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from stakenet.config import NetworkConfig
from stakenet.core.errors import (
    AlreadyExists,
    StakeNetError,
    Unauthorized,
    UnknownEntity,
)
from stakenet.core.ledger import BalanceLedger, InMemoryLedger
from stakenet.core.network import StakeNetwork
from stakenet.logging_setup import get_recent_logs
from stakenet.version import __version__
from . import network as network_routes


def status_for(error: StakeNetError) -> int:
    """HTTP status for a state machine failure."""
    if isinstance(error, Unauthorized):
        return 403
    if isinstance(error, UnknownEntity):
        return 404
    if isinstance(error, AlreadyExists):
        return 409
    return 400


def create_app(
    network: Optional[StakeNetwork] = None,
    ledger: Optional[BalanceLedger] = None,
    config: Optional[NetworkConfig] = None,
) -> FastAPI:
    """
    Build the API around a StakeNetwork.

    Without an explicit network one is built from ``config`` (default: the
    environment, .env included) and ``ledger`` (default: empty in-memory).
    """
    if network is None:
        if config is None:
            load_dotenv()
            config = NetworkConfig.from_env(dotenv=False)
        network = StakeNetwork(ledger=ledger or InMemoryLedger(), config=config)

    app = FastAPI(title="StakeNet", version=__version__)
    app.state.network = network
    app.include_router(network_routes.router)

    @app.exception_handler(StakeNetError)
    async def stakenet_error_handler(request: Request, exc: StakeNetError):
        return JSONResponse(status_code=status_for(exc), content=exc.to_dict())

    @app.get("/api/health")
    def health():
        return {"status": "ok", "version": __version__}

    @app.get("/api/logs")
    def get_logs(since_id: int = Query(0, ge=0), limit: int = Query(100, ge=1, le=500)):
        """Recent log lines from the in-memory buffer (poll with since_id)."""
        return get_recent_logs(since_id=since_id, limit=limit)

    return app
