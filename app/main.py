import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.v1.router import router as v1_router
from app.core.telemetry import setup_telemetry
from app.schemas.common import ErrorResponse
from app.services.errors import PaymentFlowError

log = logging.getLogger(__name__)

app = FastAPI(title="Listing Hub API", version="0.1.0")


@app.exception_handler(PaymentFlowError)
async def payment_flow_error_handler(request: Request, exc: PaymentFlowError) -> JSONResponse:
    if exc.status_code >= 500:
        log.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    body = ErrorResponse(code=exc.code, message=exc.message, details=exc.details, retryable=exc.retryable)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


setup_telemetry(app)
app.include_router(v1_router)
