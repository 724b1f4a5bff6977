"""
Region storage - region models keyed by board id.

Region sets come from calibration in one of three forms:
- a directory with one PNG per region plus angle_ranges.json
- an in-memory payload (base64 PNG masks + angle table), e.g. an API upload
- the game API, fetched with load_from_api(board_id)
"""
import os
import json
import base64
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Union

import cv2
import numpy as np
import requests

from dartscore.core.errors import RegionModelError
from dartscore.core.regions import REGION_NAMES, AngleRangeTable, RegionModel
from dartscore.models.schemas import RegionInfo

logger = logging.getLogger(__name__)

ANGLE_RANGES_FILE = "angle_ranges.json"


def decode_mask(data: Union[str, bytes]) -> np.ndarray:
    """Decode a base64 (or raw) PNG into a single-channel mask."""
    if isinstance(data, str):
        if "," in data and data.startswith("data:"):
            data = data.split(",", 1)[1]
        data = base64.b64decode(data)
    buf = np.frombuffer(data, dtype=np.uint8)
    mask = cv2.imdecode(buf, cv2.IMREAD_GRAYSCALE)
    if mask is None:
        raise RegionModelError("Could not decode mask image")
    return mask


def encode_mask(mask: np.ndarray) -> str:
    ok, buffer = cv2.imencode('.png', mask)
    if not ok:
        raise RegionModelError("Could not encode mask image")
    return base64.b64encode(buffer).decode('utf-8')


def region_model_from_payload(payload: Dict[str, Any]) -> RegionModel:
    """
    Build a region model from {"masks": {name: b64png}, "angle_ranges": [[min, max, value], ...]}.
    """
    masks_raw = payload.get("masks") or {}
    missing = [name for name in REGION_NAMES if name not in masks_raw]
    if missing:
        raise RegionModelError(f"Payload is missing masks: {missing}")
    masks = {name: decode_mask(masks_raw[name]) for name in REGION_NAMES}
    table = AngleRangeTable(payload.get("angle_ranges") or [])
    return RegionModel(masks, table)


def load_region_directory(path: Union[str, Path]) -> RegionModel:
    """Load <region>.png masks and angle_ranges.json from a directory."""
    path = Path(path)
    if not path.is_dir():
        raise RegionModelError(f"Region directory not found: {path}")

    masks = {}
    for name in REGION_NAMES:
        mask_path = path / f"{name}.png"
        mask = cv2.imread(str(mask_path), cv2.IMREAD_GRAYSCALE)
        if mask is None:
            raise RegionModelError(f"Missing or unreadable mask: {mask_path}")
        masks[name] = mask

    table_path = path / ANGLE_RANGES_FILE
    try:
        entries = json.loads(table_path.read_text())
    except FileNotFoundError:
        raise RegionModelError(f"Missing angle table: {table_path}") from None
    except json.JSONDecodeError as e:
        raise RegionModelError(f"Invalid angle table JSON in {table_path}: {e}") from None

    return RegionModel(masks, AngleRangeTable(entries))


class RegionStore:
    """Thread-safe in-memory storage for board region models."""

    def __init__(self):
        self._store: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()
        self._game_api_url = os.environ.get("DARTSCORE_GAME_API_URL", "http://localhost:5000")

    def save(self, board_id: str, model: RegionModel, source: str = "memory") -> None:
        with self._lock:
            self._store[board_id] = {
                "model": model,
                "created_at": datetime.now(timezone.utc),
                "source": source,
            }
        logger.info(f"Stored region model for board {board_id} ({source})")

    def get(self, board_id: str) -> Optional[RegionModel]:
        with self._lock:
            entry = self._store.get(board_id)
            return entry["model"] if entry else None

    def delete(self, board_id: str) -> bool:
        with self._lock:
            if board_id in self._store:
                del self._store[board_id]
                return True
            return False

    def list_all(self) -> List[RegionInfo]:
        with self._lock:
            return [
                RegionInfo(
                    board_id=board_id,
                    created_at=entry["created_at"],
                    source=entry["source"],
                    width=entry["model"].shape[1],
                    height=entry["model"].shape[0],
                    angle_ranges=len(entry["model"].angle_ranges),
                )
                for board_id, entry in self._store.items()
            ]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def load_directory(self, board_id: str, path: Union[str, Path]) -> RegionModel:
        model = load_region_directory(path)
        self.save(board_id, model, source=str(path))
        return model

    def load_from_api(self, board_id: str = "default") -> dict:
        """
        Fetch the region set for a board from the game API.

        Returns:
            Dict with success status and any errors
        """
        result = {"success": False, "board_id": board_id, "errors": []}
        url = f"{self._game_api_url}/api/boards/{board_id}/regions"
        logger.info(f"Fetching regions from {url}")

        try:
            response = requests.get(url, timeout=10)
            if response.status_code == 404:
                result["errors"].append(f"Board '{board_id}' has no region set")
                return result
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            result["errors"].append(f"Failed to connect to game API: {e}")
            logger.warning(f"Failed to load regions from API: {e}")
            return result
        except ValueError as e:
            result["errors"].append(f"Invalid JSON from game API: {e}")
            return result

        try:
            model = region_model_from_payload(payload)
        except RegionModelError as e:
            result["errors"].append(str(e))
            return result

        self.save(board_id, model, source=url)
        result["success"] = True
        return result


# Global instance
region_store = RegionStore()
