import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bethouse.api.router import api_router
from bethouse.config import get_settings
from bethouse.core.errors import BettingError
from bethouse.core.scheduler import scheduler_is_running, start_scheduler, stop_scheduler
from bethouse.middleware.logging import StructuredLoggingMiddleware, setup_logging

setup_logging()
logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name)
app.add_middleware(StructuredLoggingMiddleware)
app.include_router(api_router)


@app.exception_handler(BettingError)
async def betting_error_handler(request: Request, exc: BettingError) -> JSONResponse:
    if exc.retryable:
        logger.warning("Retryable %s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=400,
        content={"code": "INVALID_INPUT", "message": str(exc), "retryable": False},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "An internal error occurred.", "retryable": False},
    )


@app.on_event("startup")
def startup_event() -> None:
    start_scheduler(settings)


@app.on_event("shutdown")
def shutdown_event() -> None:
    stop_scheduler()


@app.get("/health", tags=["health"])
def health() -> dict[str, object]:
    return {"status": "ok", "environment": settings.app_env, "scheduler": scheduler_is_running()}
