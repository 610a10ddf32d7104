"""
FastAPI entrypoint for the Card Ledger backend application.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from cardledger.core.config import settings
from cardledger.api.router import api_router, cron_router
from cardledger.services.scheduler import JobScheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    job_scheduler = None
    if settings.ENABLE_IN_APP_CRON:
        job_scheduler = JobScheduler()
        job_scheduler.start()
    else:
        logger.info("In-app cron disabled. Use the /_cron triggers from an external scheduler.")
    yield
    if job_scheduler:
        await job_scheduler.stop()


app = FastAPI(
    title="Card Ledger API",
    description="Backend API for corporate card expense reconciliation and renewals",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")
app.include_router(cron_router, prefix="/_cron")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Card Ledger API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
