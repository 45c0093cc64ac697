"""Exception-to-HTTP mapping for the Ordering API.

Protean's own handlers cover the generic cases; the ordering-specific
subclasses of ``ValidationError`` get their own status codes here. Starlette
resolves handlers along the exception's MRO, so the subclasses win over the
``ValidationError`` handler.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import ConflictError, CouponIneligibleError

logger = structlog.get_logger(__name__)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": jsonable_encoder(exc.errors())})


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.messages})


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": exc.messages})


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.messages})


async def _coupon_ineligible(request: Request, exc: CouponIneligibleError) -> JSONResponse:
    logger.info("Coupon rejected", code=exc.code, reason=exc.reason, path=request.url.path)
    return JSONResponse(status_code=422, content={"valid": False, "reason": exc.reason})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(CouponIneligibleError, _coupon_ineligible)
