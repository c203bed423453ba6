"""
FastAPI server — pre-send address risk check.

Exposes GET /check?address=&chain=[&ens=] returning score, decision and
findings, and GET /health. Errors are JSON {"error": <code>} with the status
carried by the domain exception; upstream bodies and tracebacks never leak.
"""

from __future__ import annotations

from typing import Any, Literal

import httpx
from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend_safesend import __version__
from backend_safesend.analytics.analytics_pipeline import evaluate_address, validate_address, validate_chain
from backend_safesend.api_server.middleware import install_middleware
from backend_safesend.config import Settings, get_settings
from backend_safesend.core.exceptions import SafeSendError
from backend_safesend.safesend_logging import bind_request, get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------


def get_rpc_transport() -> httpx.AsyncBaseTransport | None:
    """Dependency: httpx transport for the RPC gateway (None = real network). Tests override it."""
    return None


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class FindingResponse(BaseModel):
    severity: Literal["low", "medium", "high"]
    label: str
    detail: str
    weight: int = Field(..., description="Score delta contributed by this finding")


class CheckResponse(BaseModel):
    """GET /check response: canonical assessment shape."""

    score: int = Field(..., ge=0, le=100, description="Risk score (0–100)")
    decision: Literal["allow", "block"]
    findings: list[FindingResponse] = Field(default_factory=list, description="Findings in detector order")
    degraded: list[str] = Field(
        default_factory=list,
        description="Best-effort lookups that failed (assessment used an empty result for them)",
    )


class HealthResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Backend SafeSend API",
    description="Pre-send risk score and allow/block decision for Ethereum addresses.",
    version=__version__,
)
install_middleware(app)


@app.get(
    "/check",
    response_model=CheckResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def check(
    address: str = Query("", description="0x-prefixed 40-hex-char address"),
    chain: str | None = Query(None, description="Chain name; only the configured chain is accepted"),
    ens: str | None = Query(None, description="Optional ENS name the user typed"),
    settings: Settings = Depends(get_settings),
    transport: httpx.AsyncBaseTransport | None = Depends(get_rpc_transport),
) -> CheckResponse:
    """
    Evaluate a recipient address before sending funds.

    Validation (address, chain) happens before configuration checks and any
    upstream call.
    """
    address = validate_address(address)
    chain = validate_chain(chain, settings.chain)
    log = bind_request(address, chain)
    try:
        assessment = await evaluate_address(address, settings, ens=ens, transport=transport)
    except SafeSendError:
        raise
    except Exception as e:
        log.exception("check_failed", error=str(e))
        raise SafeSendError("unexpected failure") from e
    log.info("check_completed", score=assessment.score, decision=assessment.decision)
    return CheckResponse(**assessment.to_dict())


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Liveness probe: API is up."""
    return HealthResponse(ok=True)


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------

_HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}


@app.exception_handler(SafeSendError)
def safesend_error_handler(request: Any, exc: SafeSendError) -> JSONResponse:
    """Domain errors -> {"error": code} with the exception's status."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log("check_rejected", code=exc.code, status=exc.status_code, path=request.url.path, reason=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code})


@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Any, exc: StarletteHTTPException) -> JSONResponse:
    """Consistent JSON error response for routing errors (unknown path, wrong method)."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, f"http_{exc.status_code}")
    return JSONResponse(status_code=exc.status_code, content={"error": code}, headers=getattr(exc, "headers", None))
