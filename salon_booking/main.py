# salon_booking/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL
from .db import create_db_and_tables
from .errors import ErrorKind, SchedulingError
from .routers import (
    appointments_routes,
    auth_routes,
    services_routes,
    staff_routes,
    users_routes,
    vacations_routes,
)

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# every ErrorKind must appear here; tests hold this table exhaustive
STATUS_BY_KIND = {
    ErrorKind.not_found: 404,
    ErrorKind.unauthorized: 403,
    ErrorKind.invalid_state: 400,
    ErrorKind.booking_conflict: 409,
    ErrorKind.staff_unavailable: 400,
    ErrorKind.outside_working_hours: 400,
    ErrorKind.break_conflict: 400,
    ErrorKind.vacation_conflict: 400,
    ErrorKind.vacation_overlap: 400,
    ErrorKind.validation_error: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    create_db_and_tables()
    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Salon Booking API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.kind.value} ({exc.message})")
    return JSONResponse(
        status_code=STATUS_BY_KIND[exc.kind],
        content={"detail": exc.message, "kind": exc.kind.value},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(services_routes.router)
app.include_router(staff_routes.router)
app.include_router(vacations_routes.router)
app.include_router(appointments_routes.router)
