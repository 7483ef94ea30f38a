"""Exception handlers — every failure leaves as ``{"status": "fail", "error": {...}}``.

Unexpected exceptions never reach these handlers; the request middleware
in ``app.py`` logs and records them and answers with a generic 500.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, InvalidOperationError, ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from delivery.errors import OrderingError


def fail(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "fail", "error": {"code": code, "message": message}},
    )


def _flatten(messages) -> str:
    if isinstance(messages, dict):
        return "; ".join(f"{field}: {', '.join(str(m) for m in errors)}" for field, errors in messages.items())
    return str(messages)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(OrderingError)
    async def ordering_error(request: Request, exc: OrderingError):
        return fail(exc.status_code, exc.code, exc.message)

    @app.exception_handler(ValidationError)
    async def domain_validation_error(request: Request, exc: ValidationError):
        return fail(400, "VALIDATION", _flatten(exc.messages))

    @app.exception_handler(ObjectNotFoundError)
    async def object_not_found(request: Request, exc: ObjectNotFoundError):
        return fail(404, "NOT_FOUND", str(exc))

    @app.exception_handler(InvalidOperationError)
    async def invalid_operation(request: Request, exc: InvalidOperationError):
        return fail(409, "CONFLICT", str(exc))

    @app.exception_handler(ExpectedVersionError)
    async def version_conflict(request: Request, exc: ExpectedVersionError):
        # Another unit of work committed first, and retries did not resolve it
        return fail(409, "CONFLICT", "This was changed by another request, please try again")

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        messages = [f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}" for error in exc.errors()]
        return fail(400, "VALIDATION", "; ".join(messages))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return fail(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))
