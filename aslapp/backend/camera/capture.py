# aslapp/backend/camera/capture.py
import logging
import threading
import time
from typing import Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger("asl.camera")


class CameraCapture:
    """
    Grabs frames on a dedicated thread and hands each one to the recognition pipeline.
    The latest frame is kept for preview.
    """

    def __init__(self, pipeline, source=0, resolution: Tuple[int, int] = (640, 480), mirror: bool = True):
        self.pipeline = pipeline
        self.mirror = mirror
        self._source = source
        self._cap = cv2.VideoCapture(source)
        if not self._cap.isOpened():
            raise IOError(f"Cannot open camera source: {source}")

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, resolution[0])
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, resolution[1])

        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self._thread = threading.Thread(target=self._update, name="videoQueue", daemon=True)
        self._running = False
        self.frames_read = 0
        self.dropped_frames = 0

    def _update(self):
        while self._running:
            ret, frame = self._cap.read()
            if not ret:
                self.dropped_frames += 1
                time.sleep(0.01)
                continue

            if self.mirror:
                frame = cv2.flip(frame, 1)

            self.frames_read += 1
            with self._lock:
                self._latest = frame

            self.pipeline.submit_frame(frame)

    def latest_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._latest is None else self._latest.copy()

    def is_running(self) -> bool:
        return self._running

    def __enter__(self):
        self._running = True
        self._thread.start()
        logger.info("camera %s started", self._source)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._running = False
        self._thread.join()
        self._cap.release()
        logger.info("camera stopped, %d frames read, %d dropped", self.frames_read, self.dropped_frames)
