from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from buildseason.api.routes_orders import router as orders_router
from buildseason.api.routes_parts import router as parts_router
from buildseason.api.routes_vendors import router as vendors_router
from buildseason.core.config import get_settings
from buildseason.core.errors import BuildSeasonError, StorageError, ValidationError
from buildseason.core.logging import configure_logging
from buildseason.domain.orders import OrderLifecycleController
from buildseason.persistence.db import init_db

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    logger.info("%s ready: env=%s", settings.app_name, settings.env)


@app.exception_handler(BuildSeasonError)
async def buildseason_error_handler(request: Request, exc: BuildSeasonError):
    if isinstance(exc, StorageError):
        # Detail was logged where it happened; callers only get the generic message.
        logger.error("storage error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": StorageError.public_message, "error": exc.code},
        )

    content = {"detail": exc.message, "error": exc.code}
    if isinstance(exc, ValidationError):
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("unhandled storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": StorageError.public_message, "error": StorageError.code},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation failed",
            "code": "validation_error",
            "details": [
                {"path": [p for p in err.get("loc", ()) if p != "body"], "message": err.get("msg", "")}
                for err in exc.errors()
            ],
        },
    )


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


@app.get("/orders/lifecycle")
def order_lifecycle() -> dict:
    controller = OrderLifecycleController()
    return {
        "transitions": controller.manifest(),
        "policy": {
            "rejectRequiresReason": controller.policy.reject_requires_reason,
            "receiveUpdatesInventory": controller.policy.receive_updates_inventory,
        },
    }


app.include_router(orders_router)
app.include_router(parts_router)
app.include_router(vendors_router)
