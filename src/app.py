"""QuickDrop FastAPI application.

Web server for the order fulfillment pipeline. Commands are processed
synchronously; each request runs inside the delivery domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from delivery.cache import init_cache
from delivery.domain import delivery
from delivery.utils.logging import add_context, clear_context

delivery.init()
init_cache()

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="QuickDrop API",
    description="On-demand delivery order fulfillment",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _record_internal_error(request: Request, exc: Exception) -> None:
    from delivery.errorlog.error_log import ErrorLog

    try:
        current_domain.repository_for(ErrorLog).add(
            ErrorLog.capture(
                exc,
                url=str(request.url),
                method=request.method,
                user_id=request.headers.get("x-user-id") or request.query_params.get("customer_id"),
                ip=request.client.host if request.client else None,
            )
        )
    except Exception as log_exc:
        logger.error("Failed to persist error log", error=str(log_exc))


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the delivery domain context for each request.

    Exceptions the API handlers do not translate end here: they are logged,
    recorded in the error log and answered with a generic 500.
    """
    add_context(request_id=uuid4().hex[:12], path=request.url.path)
    try:
        with delivery.domain_context():
            try:
                return await call_next(request)
            except Exception as exc:
                logger.exception("Unhandled error", method=request.method)
                _record_internal_error(request, exc)
                return JSONResponse(
                    status_code=500,
                    content={
                        "status": "fail",
                        "error": {"code": "INTERNAL", "message": "Something went wrong, please try again later"},
                    },
                )
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from delivery.api import (  # noqa: E402
    cart_router,
    ops_router,
    order_router,
    payment_router,
    product_router,
    promo_router,
    register_error_handlers,
)

register_error_handlers(app)

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(promo_router)
app.include_router(product_router)
app.include_router(ops_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "success",
            "data": {"status": "ok", "domain": delivery.name},
        }
    )
