"""Souk Sales FastAPI application.

Serves the order and analytics endpoints of the sales domain. Commands are
processed synchronously; every request runs inside the sales domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay and the log level. The field cipher
# key is loaded once here; in production a missing SALES_ENCRYPTION_KEY stops
# the process before it serves any request.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sales.domain import sales  # noqa: E402
from sales.security import configure_cipher  # noqa: E402
from sales.utils.logging import add_context, clear_context  # noqa: E402

sales.init()
configure_cipher()

_DOMAIN_PREFIXES = ("/orders", "/analytics")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Souk Sales API",
    description="Order records, status tracking and sales analytics",
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
    """Push the sales domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        clear_context()
        add_context(path=request.url.path, method=request.method, actor_id=request.headers.get("x-actor-id"))
        with sales.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from sales.api import analytics_router, order_router, register_exception_handlers  # noqa: E402

app.include_router(order_router)
app.include_router(analytics_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "sales": {"name": sales.name},
            },
        }
    )
