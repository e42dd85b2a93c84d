"""
WorkLedger Reports - Report Rendering Service
Work entries + report layouts -> HTML previews and PDFs
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from routers import reports

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("WorkLedger reports starting up...")
    yield
    # Shutdown
    logger.info("WorkLedger reports shutting down...")

app = FastAPI(
    title="WorkLedger Reports API",
    description="Report rendering for WorkLedger work entries",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])

@app.get("/")
async def root():
    return {"status": "ok", "service": "WorkLedger Reports API", "version": "1.0.0"}

@app.get("/health")
async def health():
    return {"status": "healthy"}
