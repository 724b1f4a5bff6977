"""
Game API notifications.

Posts each detected dart (and each turn reset) to an external game service.
Network failures are logged and never interrupt scoring.
"""
import base64
import logging
from typing import List, Optional

import cv2
import httpx

from dartscore.core.events import DartEvent
from dartscore.core.frame_source import Frame
from dartscore.core.sinks import DetectionSink

logger = logging.getLogger(__name__)


class GameApiNotifier(DetectionSink):
    """Send dart detections to the game API."""

    def __init__(
        self,
        game_api_url: str,
        board_id: str = "default",
        timeout: float = 5.0,
        include_image: bool = False,
        client: Optional[httpx.Client] = None,
    ):
        self.game_api_url = game_api_url.rstrip("/")
        self.board_id = board_id
        self.include_image = include_image
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def dart_url(self) -> str:
        return f"{self.game_api_url}/api/games/board/{self.board_id}/dart-detected"

    def build_payload(self, event: DartEvent, frame: Optional[Frame] = None) -> dict:
        r = event.result
        payload = {
            "frameIndex": event.frame_index,
            "segment": r.segment,
            "multiplier": r.multiplier,
            "score": r.score,
            "zone": r.zone,
            "angle": r.angle,
            "tipX": event.tip[0],
            "tipY": event.tip[1],
            "imageBase64": None,
        }
        if self.include_image and frame is not None:
            _, buffer = cv2.imencode('.jpg', frame.image, [cv2.IMWRITE_JPEG_QUALITY, 75])
            payload["imageBase64"] = base64.b64encode(buffer).decode('utf-8')
        return payload

    def on_dart(self, event: DartEvent, frame: Frame):
        payload = self.build_payload(event, frame)
        try:
            response = self._client.post(self.dart_url, json=payload)
            if response.status_code == 200:
                logger.info(f"Notified game API: {event.result.zone} {event.result.segment}x{event.result.multiplier}={event.score}")
            else:
                logger.warning(f"Game API returned {response.status_code}: {response.text}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to notify game API: {e}")

    def on_scores(self, scores: List[Optional[int]]):
        # Only an all-empty turn is worth telling the game about
        if any(s is not None for s in scores):
            return
        url = f"{self.game_api_url}/api/games/board/{self.board_id}/turn-cleared"
        try:
            self._client.post(url, json={"boardId": self.board_id})
        except httpx.HTTPError as e:
            logger.error(f"Failed to notify game API of cleared turn: {e}")

    def close(self):
        self._client.close()
