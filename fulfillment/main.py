"""FastAPI entrypoint for multi-branch order fulfillment."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fulfillment.api.v1.api import api_router
from fulfillment.core.config import settings
from fulfillment.db.base import Base
from fulfillment.db.seed import ensure_default_admin
from fulfillment.db import session as db_session
from fulfillment.services.errors import (
    AlreadyClaimed,
    BranchClosed,
    CancellationWindowClosed,
    EntityNotFound,
    FulfillmentError,
    InvalidBusinessHours,
    InvalidTransition,
    NoActiveRequest,
    NotAuthorized,
    PaymentNotApproved,
    WorkerNotEligible,
    WriteConflict,
)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[FulfillmentError], int] = {
    NotAuthorized: 403,
    WorkerNotEligible: 403,
    InvalidTransition: 409,
    PaymentNotApproved: 409,
    AlreadyClaimed: 409,
    NoActiveRequest: 409,
    CancellationWindowClosed: 409,
    BranchClosed: 409,
    InvalidBusinessHours: 400,
}

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup() -> None:
    Base.metadata.create_all(bind=db_session.engine)
    with db_session.SessionLocal() as session:
        try:
            admin_present = ensure_default_admin(session)
            logger.info("[BOOTSTRAP] default admin present: %s", "yes" if admin_present else "no")
        except Exception:
            logger.exception("[BOOTSTRAP] Admin bootstrap failed; continuing startup.")


@app.exception_handler(FulfillmentError)
def fulfillment_error_handler(request: Request, exc: FulfillmentError) -> JSONResponse:
    status_code = next((code for error, code in ERROR_STATUS.items() if isinstance(exc, error)), 400)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(EntityNotFound)
def not_found_handler(request: Request, exc: EntityNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc), "code": "not_found"})


@app.exception_handler(WriteConflict)
def write_conflict_handler(request: Request, exc: WriteConflict) -> JSONResponse:
    logger.warning("[DB] Giving up after repeated write conflicts on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc), "code": "write_conflict"})
