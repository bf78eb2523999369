from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.buses import router as buses_router
from src.adapters.api.controllers.locations import router as locations_router
from src.adapters.api.controllers.routes import router as routes_router
from src.adapters.api.controllers.trips import router as trips_router
from src.adapters.api.dependencies import get_simulation_service
from src.domain.exceptions import (
    AlreadyTerminal,
    InvalidInput,
    NotFound,
    SimulationAlreadyRunning,
    TrackingError,
    TransientIO,
)

_STATUS_BY_ERROR: tuple[tuple[type[TrackingError], int], ...] = (
    (NotFound, 404),
    (InvalidInput, 400),
    (AlreadyTerminal, 409),
    (SimulationAlreadyRunning, 409),
    (TransientIO, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Running simulations write a final `cancelled` status before exit.
    if get_simulation_service.cache_info().currsize:
        await get_simulation_service().shutdown()


app = FastAPI(title="BusTrack", lifespan=lifespan)
app.include_router(routes_router)
app.include_router(buses_router)
app.include_router(trips_router)
app.include_router(locations_router)


@app.exception_handler(TrackingError)
async def tracking_error_handler(request: Request, exc: TrackingError) -> JSONResponse:
    status_code = next(
        (code for err, code in _STATUS_BY_ERROR if isinstance(exc, err)), 500
    )
    if status_code >= 500:
        logging.getLogger("uvicorn.error").warning(
            "%s on %s: %s", exc.__class__.__name__, request.url.path, exc
        )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc) or exc.__class__.__name__},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so clients can display them.

    Starlette's default 500 handler may return plain text/HTML.
    """

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    reveal = (os.getenv("BUSTRACK_REVEAL_ERRORS") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    if reveal or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
