"""FastAPI application entry point."""
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.config import settings
from app.database import Database, ensure_indexes
from app.exceptions import InterviewEngineError
from app.routers import interviews, sessions, quota, reference, dashboard
from app.services.prompt_service import PromptGenerationService
from app.services.reference_service import ReferenceDataResolver

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    await Database.connect()
    db = Database.get_database()
    await ensure_indexes(db)
    await ReferenceDataResolver(db).seed()

    stop = asyncio.Event()
    worker = None
    if settings.prompt_worker_enabled and settings.openai_api_key:
        worker = asyncio.create_task(PromptGenerationService(db).run(stop))
    elif settings.prompt_worker_enabled:
        logger.warning("Prompt worker enabled but OPENAI_API_KEY is not set; not starting it")

    yield

    # Shutdown
    stop.set()
    if worker is not None:
        await worker
    await Database.disconnect()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InterviewEngineError)
async def engine_error_handler(request: Request, exc: InterviewEngineError):
    """Map typed service errors onto HTTP responses."""
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# Include routers
app.include_router(interviews.router)
app.include_router(sessions.router)
app.include_router(quota.router)
app.include_router(reference.router)
app.include_router(dashboard.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Mock Interview Engine API",
        "version": settings.app_version,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
