"""FastAPI application exposing the scan operations.

Run with ``uvicorn nxscanner.api:app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import ScannerConfig, load_config, setup_logging
from .db import ScanLedger
from .service import ScanService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["scans"])


class ParseRequest(BaseModel):
    text: str = ""


class ScanRequest(BaseModel):
    text: Optional[str] = None
    parsed: Optional[dict[str, Any]] = None


def get_service(request: Request) -> ScanService:
    return request.app.state.service


def _respond(result: dict) -> JSONResponse:
    """Infrastructure failures are reported as 500 with the same body shape."""
    return JSONResponse(result, status_code=200 if result.get("ok") else 500)


@router.post("/parse")
def parse_payload(payload: ParseRequest, service: ScanService = Depends(get_service)) -> dict:
    """Parse and validate a raw payload without recording it."""
    return service.parse_payload(payload.text)


@router.post("/scans")
async def submit_scan(payload: ScanRequest, service: ScanService = Depends(get_service)) -> JSONResponse:
    """Record a scan and report whether the ticket was seen before."""
    return _respond(await service.submit_scan(payload.text, payload.parsed))


@router.get("/scans/list")
async def list_scans(service: ScanService = Depends(get_service)) -> JSONResponse:
    return _respond(await service.list_today_scans())


@router.post("/scans/clear")
async def clear_scans(service: ScanService = Depends(get_service)) -> JSONResponse:
    return _respond(await service.clear_all_scans())


@router.get("/scans/{key:path}")
async def get_scan(key: str, service: ScanService = Depends(get_service)) -> JSONResponse:
    return _respond(await service.get_scan(key))


def create_app(
    config: ScannerConfig | None = None,
    ledger: ScanLedger | None = None,
) -> FastAPI:
    """Build the app; the ledger is owned by the app and closed on shutdown."""
    load_dotenv(find_dotenv(usecwd=True))
    config = config or load_config()
    setup_logging(config.logging.level)
    ledger = ledger or ScanLedger(
        config.database.path,
        recent_uses=config.ledger.recent_uses,
        list_limit=config.ledger.list_limit,
    )
    service = ScanService(ledger)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if config.ledger.purge_interval_seconds > 0:
            from .scheduler import ExpiryScheduler

            scheduler = ExpiryScheduler(ledger, config.ledger)
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()
            ledger.close()

    app = FastAPI(title="NX Scanner API", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "NX Scanner API is running"}

    return app


app = create_app()
