"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Union
from datetime import datetime


# === Regions ===

class RegionUploadRequest(BaseModel):
    """Region set produced by calibration"""
    masks: Dict[str, str] = Field(..., description="Region name -> base64 PNG mask")
    angle_ranges: List[List[float]] = Field(..., description="[min_deg, max_deg, segment] entries covering 0-360")


class RegionInfo(BaseModel):
    """Info about a stored region set"""
    board_id: str
    created_at: datetime
    source: str
    width: int
    height: int
    angle_ranges: int


class RegionListResponse(BaseModel):
    boards: List[RegionInfo]


class RegionLoadRequest(BaseModel):
    """Load a region set from a directory on this machine"""
    path: str = Field(..., description="Directory with <region>.png masks and angle_ranges.json")


# === Session ===

class SessionStartRequest(BaseModel):
    """Request to start scoring a video feed"""
    board_id: str = Field("default", description="Board whose region set to score against")
    source: Union[int, str] = Field(0, description="Camera index or video file path")
    config: Optional[Dict[str, Any]] = Field(None, description="DetectionConfig overrides")
    notify_game_api: bool = Field(False, description="Post detections to the game API")


class DartInfo(BaseModel):
    """A detected dart"""
    frame_index: int
    score: int = Field(..., description="Points (segment * multiplier, or 25/50)")
    segment: int = Field(..., description="Segment number 1-20, or 0 for bull/miss")
    multiplier: int = Field(..., description="1=single, 2=double, 3=triple, 0=miss")
    zone: str
    angle: float = Field(..., description="Tip angle around the bull, degrees")
    tip: List[float]
    bbox_top_left: List[float]
    bbox_bottom_right: List[float]
    flight_center: List[float]
    contour_area: float
    aspect_ratio: float
    timestamp: float


class SessionState(BaseModel):
    """Current state of the scoring session"""
    running: bool
    board_id: Optional[str] = None
    source: Optional[str] = None
    state: Optional[str] = Field(None, description="awaiting_reference | scanning | skip_until_zero_diff")
    status: Optional[str] = Field(None, description="stable | candidate | motion | unplugging")
    scores: List[Optional[int]] = Field(default_factory=lambda: [None, None, None])
    frame: int = 0
    fps: Optional[float] = None
    frame_count: Optional[int] = None
    has_reference: bool = False
    failure: Optional[str] = None
    darts: List[DartInfo] = Field(default_factory=list)
