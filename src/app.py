"""Parcel forwarding FastAPI application.

Web server that processes consolidation, GEX and freight-payment commands
synchronously via HTTP. Every request runs inside the forwarding domain
context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from forwarding.domain import forwarding
from forwarding.utils.logging import bind_request, clear_request, configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV controls which config overlay is applied.
configure_logging()
forwarding.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Parcel Forwarding API",
    description="Consolidation selection, freight payment and GEX protection",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the forwarding domain context and tag logs with a request id."""
    request_id = bind_request(request.headers.get("X-Request-ID"), path=request.url.path)
    try:
        with forwarding.domain_context():
            response = await call_next(request)
    finally:
        clear_request()
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routers and error mapping
# ---------------------------------------------------------------------------
from forwarding.api import (  # noqa: E402
    consolidation_router,
    gex_router,
    package_router,
    payment_router,
    register_error_handlers,
)

app.include_router(package_router)
app.include_router(consolidation_router)
app.include_router(gex_router)
app.include_router(payment_router)

register_exception_handlers(app)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": forwarding.name})
