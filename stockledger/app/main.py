from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockledger.app.api.v1.router import router as v1_router
from stockledger.app.core import config
from stockledger.app.core.logging_config import configure_logging, get_logger
from stockledger.services.errors import (
    ConcurrencyConflictError,
    InsufficientStockError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
)

configure_logging(level=config.LOG_LEVEL, json_output=config.LOG_JSON)
logger = get_logger("app")

# NotFound -> 404, InvalidInput -> 400, règle métier / concurrence -> 409
_STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (NotFoundError, 404),
    (InvalidInputError, 400),
    (InsufficientStockError, 409),
    (ConcurrencyConflictError, 409),
]


def _status_for(exc: LedgerError) -> int:
    for exc_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, exc_type):
            return status
    return 500


app = FastAPI(title="STOCK LEDGER", version="0.1.0")


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error("Unhandled ledger error", exc_info=exc, extra={"path": request.url.path})
    else:
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "status": status, "error_code": exc.code},
        )
    return JSONResponse(status_code=status, content=exc.to_dict())


app.include_router(v1_router, prefix="/v1")
