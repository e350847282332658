import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.errors import CheckoutError
from .core.logging_config import setup_logging
from .db import init_db
from .routers import discounts, health, terminal

setup_logging()
log = logging.getLogger(__name__)

# Crea tablas faltantes (desarrollo)
init_db()

app = FastAPI(title=settings.app_name, version=settings.app_version)


@app.exception_handler(CheckoutError)
async def _checkout_error(request: Request, exc: CheckoutError):
    log.info(f"{request.method} {request.url.path} -> {exc.code}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.code, "message": str(exc)},
    )


@app.exception_handler(httpx.HTTPError)
async def _backend_error(request: Request, exc: httpx.HTTPError):
    log.error(f"{request.method} {request.url.path} -> backend error: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": "BACKEND_UNAVAILABLE", "message": str(exc)},
    )


app.include_router(health.router)
app.include_router(discounts.router)
app.include_router(terminal.router)
