"""
Scoring Session Service

Runs a ScoringSession over a camera or video file in a background thread
and exposes a lock-protected view of its state to the API.
"""
import os
import time
import logging
import threading
from typing import Optional, Union

from dartscore.core.config import DetectionConfig
from dartscore.core.frame_source import FrameSource, open_source
from dartscore.core.notifier import GameApiNotifier
from dartscore.core.overlay import OverlayPublisher
from dartscore.core.regions import RegionModel
from dartscore.core.sinks import CompositeSink, LoggingSink
from dartscore.core.turn_state import ScoringSession

logger = logging.getLogger(__name__)


class SessionService:
    """
    Owns at most one running scoring session.

    Commands from the API (reset, replay) are applied between frames by the
    worker thread, so turn state is only ever touched from one thread.
    """

    def __init__(self, game_api_url: Optional[str] = None):
        self.game_api_url = game_api_url or os.environ.get("DARTSCORE_GAME_API_URL", "http://localhost:5000")
        self.board_id: Optional[str] = None
        self.source_name: Optional[str] = None

        self._session: Optional[ScoringSession] = None
        self._source: Optional[FrameSource] = None
        self._overlay: Optional[OverlayPublisher] = None
        self._notifier: Optional[GameApiNotifier] = None

        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._pending: list = []
        self._snapshot: dict = {}

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(
        self,
        regions: RegionModel,
        source: Union[int, str, FrameSource],
        board_id: str = "default",
        config: Optional[DetectionConfig] = None,
        notify_game_api: bool = False,
        subtractor_factory=None,
    ):
        """Open the source and start scoring in a background thread."""
        if self.running:
            raise RuntimeError("A scoring session is already running")

        config = config or DetectionConfig.from_env()
        frame_source = source if isinstance(source, FrameSource) else open_source(source)

        self._overlay = OverlayPublisher(regions, min_interval_s=config.overlay_min_interval_s)
        sinks = [LoggingSink(), self._overlay]
        if notify_game_api:
            self._notifier = GameApiNotifier(self.game_api_url, board_id=board_id)
            sinks.append(self._notifier)

        self._source = frame_source
        self._session = ScoringSession(
            regions, frame_source, config=config, sink=CompositeSink(sinks),
            subtractor_factory=subtractor_factory,
        )
        self.board_id = board_id
        self.source_name = str(source if not isinstance(source, FrameSource) else type(source).__name__)
        self._publish()

        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="scoring-session", daemon=True)
        self._thread.start()
        logger.info(f"Scoring session started for board {board_id} on {self.source_name}")

    def stop(self, timeout: float = 5.0):
        """Stop the worker between frames and release the source."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(f"Scoring loop did not stop within {timeout}s; still waiting on the frame source")
                return
            self._thread = None
        if self._source is not None:
            self._source.release()
        if self._notifier is not None:
            self._notifier.close()
            self._notifier = None
        logger.info("Scoring session stopped")

    def reset_score(self):
        self._enqueue("reset_score")

    def replay(self):
        if self._overlay is not None:
            self._overlay.clear()
        self._enqueue("replay")

    def _enqueue(self, command: str):
        if self._session is None:
            raise RuntimeError("No scoring session")
        with self._lock:
            self._pending.append(command)
        if not self.running:
            # Nothing is consuming the queue; apply directly
            self._apply_pending(self._session)
            self._publish()

    def _apply_pending(self, session: ScoringSession):
        with self._lock:
            commands, self._pending = self._pending, []
        for command in commands:
            getattr(session, command)()

    def _loop(self):
        logger.info("Scoring loop started")
        session = self._session
        try:
            while not self._stop.is_set():
                self._apply_pending(session)
                if not session.step(self._stop):
                    logger.info("Frame source exhausted; scoring loop ending")
                    break
                self._publish()
        except Exception as e:
            logger.error(f"Error in scoring loop: {e}", exc_info=True)
        finally:
            self._apply_pending(session)
            self._publish()
            logger.info("Scoring loop stopped")

    def _publish(self):
        snapshot = self._session.snapshot()
        with self._lock:
            self._snapshot = snapshot

    def get_status(self) -> dict:
        with self._lock:
            snapshot = dict(self._snapshot)
        snapshot.update({
            "running": self.running,
            "board_id": self.board_id,
            "source": self.source_name,
        })
        return snapshot

    def overlay_jpeg(self) -> Optional[bytes]:
        if self._overlay is None:
            return None
        return self._overlay.latest_jpeg()

    def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Block until the worker thread ends (recordings only). True if it ended."""
        deadline = time.monotonic() + timeout
        while self.running and time.monotonic() < deadline:
            time.sleep(0.01)
        return not self.running


# Global instance
_session_service: Optional[SessionService] = None


def get_session_service() -> SessionService:
    """Get or create the global session service instance."""
    global _session_service
    if _session_service is None:
        _session_service = SessionService()
    return _session_service
