"""
DartScore API - Video Dart Scoring Service

Watches a camera or recorded video, detects darts as they settle in the
board, and scores them against a calibrated region set.
"""
import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dartscore.api.routes import router
from dartscore.core.errors import RegionModelError
from dartscore.core.session_service import get_session_service
from dartscore.core.storage import region_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Configuration
API_TITLE = "DartScore API"
API_VERSION = "1.0.0"
API_DESCRIPTION = """
Video dart scoring - watches a feed, finds the frame where a dart comes to
rest and scores it against calibrated region masks.

### Flow:
1. Upload or load a region set for the board (`/v1/regions/...`)
2. Start a session on a camera index or video file (`/v1/session/start`)
3. Poll `/v1/session/state` for the turn's three score slots
4. Pulling the darts out starts the next turn automatically

## Endpoints

### Regions
- `GET /v1/regions` - List stored region sets
- `POST /v1/regions/{board_id}` - Upload masks + angle table
- `POST /v1/regions/{board_id}/load` - Load from a directory
- `POST /v1/regions/{board_id}/fetch` - Fetch from the game API

### Session
- `POST /v1/session/start` / `POST /v1/session/stop`
- `GET /v1/session/state`
- `POST /v1/session/reset-score` / `POST /v1/session/replay`
- `GET /v1/session/overlay` - Latest detection overlay (JPEG)
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("DartScore API starting")
    regions_dir = os.environ.get("DARTSCORE_REGIONS_DIR")
    if regions_dir:
        try:
            region_store.load_directory("default", regions_dir)
        except RegionModelError as e:
            logger.warning(f"Could not load default regions from {regions_dir}: {e}")
    yield
    get_session_service().stop()
    logger.info("DartScore API shutting down")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS - allow all for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


@app.get("/")
async def root():
    """API info and links."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/health",
    }
