"""
DartScore API Routes

Region sets are uploaded or loaded per board; one scoring session at a time
runs against a camera or video file in the background.
"""
import logging
from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import Response

from dartscore.core.config import DetectionConfig
from dartscore.core.errors import RegionModelError
from dartscore.core.session_service import SessionService, get_session_service
from dartscore.core.storage import RegionStore, region_model_from_payload, region_store
from dartscore.models.schemas import (
    RegionListResponse,
    RegionLoadRequest,
    RegionUploadRequest,
    SessionStartRequest,
    SessionState,
)

logger = logging.getLogger("dartscore.routes")

router = APIRouter()


def get_region_store() -> RegionStore:
    return region_store


# === Health ===

@router.get("/health")
async def health(service: SessionService = Depends(get_session_service)):
    """Service health check."""
    return {"status": "ok", "session_running": service.running}


# === Regions ===

@router.get("/v1/regions", response_model=RegionListResponse)
async def list_regions(store: RegionStore = Depends(get_region_store)):
    """List stored region sets."""
    return RegionListResponse(boards=store.list_all())


@router.post("/v1/regions/{board_id}")
async def upload_regions(
    board_id: str,
    request: RegionUploadRequest,
    store: RegionStore = Depends(get_region_store)
):
    """Store a region set (masks + angle table) for a board."""
    try:
        model = region_model_from_payload(request.model_dump())
    except RegionModelError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.save(board_id, model, source="upload")
    return {"board_id": board_id, **model.describe()}


@router.post("/v1/regions/{board_id}/load")
async def load_regions(
    board_id: str,
    request: RegionLoadRequest,
    store: RegionStore = Depends(get_region_store)
):
    """Load a region set from a directory."""
    try:
        model = store.load_directory(board_id, request.path)
    except RegionModelError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"board_id": board_id, **model.describe()}


@router.post("/v1/regions/{board_id}/fetch")
async def fetch_regions(board_id: str, store: RegionStore = Depends(get_region_store)):
    """Fetch a board's region set from the game API."""
    result = store.load_from_api(board_id)
    if not result["success"]:
        raise HTTPException(status_code=502, detail="; ".join(result["errors"]))
    return result


@router.delete("/v1/regions/{board_id}")
async def delete_regions(board_id: str, store: RegionStore = Depends(get_region_store)):
    if not store.delete(board_id):
        raise HTTPException(status_code=404, detail=f"No region set for board {board_id}")
    return {"deleted": board_id}


# === Session ===

@router.post("/v1/session/start", response_model=SessionState)
async def start_session(
    request: SessionStartRequest,
    service: SessionService = Depends(get_session_service),
    store: RegionStore = Depends(get_region_store)
):
    """Start scoring a camera or video file."""
    if service.running:
        raise HTTPException(status_code=409, detail="A scoring session is already running")

    regions = store.get(request.board_id)
    if regions is None:
        raise HTTPException(status_code=404, detail=f"No region set for board {request.board_id}")

    try:
        config = DetectionConfig.from_dict(request.config)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid config: {e}")

    try:
        service.start(
            regions,
            request.source,
            board_id=request.board_id,
            config=config,
            notify_game_api=request.notify_game_api,
        )
    except IOError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return SessionState(**service.get_status())


@router.post("/v1/session/stop", response_model=SessionState)
async def stop_session(service: SessionService = Depends(get_session_service)):
    service.stop()
    return SessionState(**service.get_status())


@router.get("/v1/session/state", response_model=SessionState)
async def session_state(service: SessionService = Depends(get_session_service)):
    """Current turn state, motion status and score slots."""
    return SessionState(**service.get_status())


@router.post("/v1/session/reset-score", response_model=SessionState)
async def reset_score(service: SessionService = Depends(get_session_service)):
    try:
        service.reset_score()
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SessionState(**service.get_status())


@router.post("/v1/session/replay", response_model=SessionState)
async def replay(service: SessionService = Depends(get_session_service)):
    """Discard the reference frame and wait for a new one."""
    try:
        service.replay()
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SessionState(**service.get_status())


@router.get("/v1/session/overlay")
async def session_overlay(service: SessionService = Depends(get_session_service)):
    """Latest dart overlay as JPEG."""
    data = service.overlay_jpeg()
    if data is None:
        raise HTTPException(status_code=404, detail="No overlay available")
    return Response(content=data, media_type="image/jpeg")
