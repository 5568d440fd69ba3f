from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import time
import logging
import os

from .api.v1.departments import router as departments_router
from .api.v1.milestones import router as milestones_router
from .api.v1.registrations import router as registrations_router
from .core.config import settings
from .core.database import init_db
from .core.exceptions import RegistrationError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Hospital registration: capacity-checked booking with least-load doctor assignment",
    openapi_url="/api/v1/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not os.getenv("TESTING"):
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost", "testserver"]
    )

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.4f}s"
    )
    return response

@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.detail}
    )

app.include_router(departments_router, prefix="/api/v1")
app.include_router(registrations_router, prefix="/api/v1")
app.include_router(milestones_router, prefix="/api/v1")

@app.on_event("startup")
async def startup_event():
    db_url = settings.get_database_url
    db_type = "PostgreSQL" if "postgresql" in db_url else "SQLite" if "sqlite" in db_url else "Unknown"
    logger.info(f"Using {db_type} database, {settings.SLOT_LOCK_BACKEND} slot locks")
    init_db()

@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.VERSION}

@app.get("/api/v1/info")
async def api_info():
    """Describe the admission setup this instance runs with."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "admission": {
            "slot_lock_backend": settings.SLOT_LOCK_BACKEND,
            "max_retries": settings.ADMISSION_MAX_RETRIES,
        },
        "endpoints": {
            "departments": "/api/v1/departments",
            "registrations": "/api/v1/registrations",
            "milestones": "/api/v1/milestones",
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hospital_registration.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
