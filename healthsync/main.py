import logging
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from healthsync.core.config import CLIENT_URL, SCHEDULER_ENABLED
from healthsync.core.errors import CareError
from healthsync.core.log import configure_logging
from healthsync.core.scheduler import start_scheduler, stop_scheduler
from healthsync.database import init_db
from healthsync.routers import auth, doctors, patients, medications, appointments, health_logs, notifications, chat

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="HealthSync API")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(doctors.router)
app.include_router(patients.router)
app.include_router(medications.router)
app.include_router(appointments.router)
app.include_router(health_logs.router)
app.include_router(notifications.router)
app.include_router(chat.router)


@app.exception_handler(CareError)
async def care_error_handler(request: Request, exc: CareError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error": exc.code})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Server Error"})


@app.on_event("startup")
async def startup_event():
    init_db()
    if SCHEDULER_ENABLED:
        start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()


@app.get("/")
async def root():
    return {"message": "HealthSync API is running"}
