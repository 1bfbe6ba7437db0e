import logging
import os
import time
from pathlib import Path
from typing import Dict, Optional

import mediapipe as mp
import numpy as np

from .errors import ModelLoadError
from .landmarks import HandJoint, JointSample, joint_samples_from_landmarks

logger = logging.getLogger("asl.hands")

HAND_TASK_NAME = "hand_landmarker.task"


class HandLandmarkDetector:
    """
    MediaPipe Tasks hand landmarker in VIDEO mode, one hand.
    Not thread-safe: detect() calls must not overlap. The pipeline's busy lock
    serializes them, whichever thread the frames arrive on.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        search_dir: Optional[str] = None,
        min_hand_detection_confidence: float = 0.5,
        min_hand_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self.model_path = self._resolve_model_path(model_path, search_dir)

        BaseOptions = mp.tasks.BaseOptions
        HandLandmarker = mp.tasks.vision.HandLandmarker
        HandLandmarkerOptions = mp.tasks.vision.HandLandmarkerOptions
        RunningMode = mp.tasks.vision.RunningMode

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=RunningMode.VIDEO,
            num_hands=1,
            min_hand_detection_confidence=min_hand_detection_confidence,
            min_hand_presence_confidence=min_hand_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

        try:
            self._landmarker = HandLandmarker.create_from_options(options)
        except Exception as e:
            raise ModelLoadError(f"cannot create hand landmarker from {self.model_path}: {e}") from e

        self._last_ts_ms = 0

    def close(self) -> None:
        self._landmarker.close()

    @staticmethod
    def _resolve_model_path(model_path: Optional[str], search_dir: Optional[str]) -> Path:
        """
        Priority:
          1) explicit model_path argument
          2) env ASL_HAND_TASK_PATH
          3) search_dir (the classifier's directory)
          4) next to this file / assets
          5) current directory
        """
        if model_path:
            p = Path(model_path).expanduser().resolve()
            if not p.exists():
                raise ModelLoadError(f"{HAND_TASK_NAME} not found: {p}")
            return p

        envp = os.getenv("ASL_HAND_TASK_PATH", "").strip()
        if envp:
            p = Path(envp).expanduser().resolve()
            if not p.exists():
                raise ModelLoadError(f"ASL_HAND_TASK_PATH points to a missing file: {p}")
            return p

        here = Path(__file__).resolve()
        candidates = [
            here.parent / "assets" / HAND_TASK_NAME,
            here.parent / HAND_TASK_NAME,
            Path.cwd() / HAND_TASK_NAME,
        ]
        if search_dir:
            candidates.insert(0, Path(search_dir) / HAND_TASK_NAME)
        for c in candidates:
            if c.exists():
                return c.resolve()

        raise ModelLoadError(
            f"{HAND_TASK_NAME} not found.\n"
            "Put it next to the classifier model or set env ASL_HAND_TASK_PATH."
        )

    def _ensure_ts(self, ts_ms: int) -> int:
        # VIDEO mode requires strictly increasing timestamps
        if ts_ms <= self._last_ts_ms:
            ts_ms = self._last_ts_ms + 1
        self._last_ts_ms = ts_ms
        return ts_ms

    def detect(self, frame_bgr: np.ndarray, ts_ms: Optional[int] = None) -> Optional[Dict[HandJoint, JointSample]]:
        """
        Returns pixel-space joint samples of the first hand, or None when no hand is in the frame.
        """
        if ts_ms is None:
            ts_ms = int(time.monotonic() * 1000)
        ts_ms = self._ensure_ts(int(ts_ms))

        h, w = frame_bgr.shape[:2]
        frame_rgb = frame_bgr[:, :, ::-1].copy()
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._landmarker.detect_for_video(mp_image, ts_ms)

        if not result.hand_landmarks:
            return None

        samples = joint_samples_from_landmarks(result.hand_landmarks[0], w, h)
        logger.debug("extracted %d hand landmarks", len(samples))
        return samples
