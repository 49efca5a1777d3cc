"""Sales domain API package."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers as register_protean_exception_handlers

from sales.api.routes import analytics_router, order_router
from sales.errors import ConcurrencyConflict, DuplicateOrderNumber


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain failures to HTTP responses.

    Protean's handlers cover ``ValidationError`` (400) and
    ``ObjectNotFoundError`` (404); the order persistence failures are added
    on top. A version clash detected when a command's unit of work commits
    is the same conflict as ``ConcurrencyConflict``.
    """
    register_protean_exception_handlers(app)

    @app.exception_handler(ConcurrencyConflict)
    @app.exception_handler(ExpectedVersionError)
    async def concurrency_conflict_handler(request: Request, exc: Exception):
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(DuplicateOrderNumber)
    async def duplicate_order_number_handler(request: Request, exc: DuplicateOrderNumber):
        return JSONResponse(status_code=503, content={"error": str(exc)})


__all__ = ["analytics_router", "order_router", "register_exception_handlers"]
