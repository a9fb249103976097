import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import schemas
from .db import Base, engine
from .errors import StoreError
from .logs import configure_logging, get_logger
from .routers import orders, products, roles, users

configure_logging()
log = get_logger(__name__)

# Create tables if not existing. The SQLite totals triggers are installed
# separately by migration/install_order_triggers.py.
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Storefront API")

app.include_router(users.router)
app.include_router(roles.router)
app.include_router(products.router)
app.include_router(orders.router)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    log.info("request_completed", status_code=response.status_code)
    return response


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content=schemas.error_body(exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return JSONResponse(status_code=400, content=schemas.error_body("Validation error", errors))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=schemas.error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log.error("database_error", error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=500, content=schemas.error_body("Database error while processing the request"))


@app.get("/health")
async def health():
    return {"status": "ok"}
